"""
Servicio de clima para Flood Core.

Contrato: ``get_weather(location) -> WeatherSnapshot`` asíncrono. Un fallo
de red se reporta como ``CapabilityUnavailableError``; nunca se rellena
con valores por defecto.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp
from pydantic import ValidationError

from .config import WeatherConfig
from .errors import CapabilityUnavailableError
from .models import Location, WeatherSnapshot

logger = logging.getLogger(__name__)


class WeatherProvider(ABC):
    """
    🌦️ Clase base abstracta para proveedores de clima.

    Example:
        >>> provider = StaticWeatherProvider()
        >>> weather = await provider.get_weather(Location(latitude=21.1, longitude=79.0))
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Identificador del proveedor."""
        pass

    @abstractmethod
    async def get_weather(self, location: Location) -> WeatherSnapshot:
        """
        Obtiene el clima actual en una ubicación.

        Raises:
            CapabilityUnavailableError: Si el servicio no responde o responde mal
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"


class StaticWeatherProvider(WeatherProvider):
    """Clima fijo de demostración: siempre 25 °C y sin lluvia."""

    def __init__(self, temperature_celsius: float = 25.0, rainfall_millimeters: float = 0.0):
        self.temperature_celsius = temperature_celsius
        self.rainfall_millimeters = rainfall_millimeters

    @property
    def name(self) -> str:
        return "static"

    async def get_weather(self, location: Location) -> WeatherSnapshot:
        return WeatherSnapshot(
            temperature_celsius=self.temperature_celsius,
            rainfall_millimeters=self.rainfall_millimeters,
        )


class OpenMeteoWeatherProvider(WeatherProvider):
    """
    🌐 Clima real desde la API pública de Open-Meteo.

    Consulta ``current=temperature_2m,precipitation`` para la coordenada.
    Cada llamada abre su propia sesión HTTP: no hay caché.
    """

    def __init__(self, weather_config: Optional[WeatherConfig] = None):
        self.config = weather_config or WeatherConfig()

    @property
    def name(self) -> str:
        return "open-meteo"

    async def get_weather(self, location: Location) -> WeatherSnapshot:
        params = {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": "temperature_2m,precipitation",
        }
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.config.base_url, params=params) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise CapabilityUnavailableError(
                            "weather", f"HTTP {response.status}: {body[:200]}"
                        )
                    payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"🌧️ Weather lookup failed for {location.latitude},{location.longitude}: {e}")
            raise CapabilityUnavailableError("weather", str(e) or type(e).__name__) from e

        current = payload.get("current") if isinstance(payload, dict) else None
        try:
            return WeatherSnapshot(
                temperature_celsius=float(current["temperature_2m"]),
                rainfall_millimeters=float(current["precipitation"]),
            )
        except (TypeError, KeyError, ValueError, ValidationError) as e:
            raise CapabilityUnavailableError("weather", f"unexpected payload: {payload!r}") from e


def build_weather_provider(weather_config: Optional[WeatherConfig] = None) -> WeatherProvider:
    """Crea el proveedor configurado (static u open-meteo)."""
    cfg = weather_config or WeatherConfig()
    if cfg.backend == "open-meteo":
        return OpenMeteoWeatherProvider(cfg)
    if cfg.backend != "static":
        raise ValueError(f"Unknown weather backend '{cfg.backend}'. Available: static, open-meteo")
    return StaticWeatherProvider()
