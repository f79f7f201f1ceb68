"""
Configuración centralizada para Flood Core.
Define umbrales del clasificador por reglas y parámetros de las capacidades externas.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class RuleThresholds:
    """Umbrales del clasificador determinista (modo degradado y tests)."""
    water_watch_cm: float = 50.0
    water_warning_cm: float = 80.0
    water_flood_cm: float = 120.0
    rainfall_heavy_mm: float = 20.0
    turbidity_high_ntu: float = 70.0


@dataclass
class LLMConfig:
    """Configuración de la capacidad LLM (Generative Language API)."""
    backend: str = "rules"  # rules | gemini | gemini+rules
    api_key: Optional[str] = None
    model: str = "gemini-2.0-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    temperature: float = 0.2
    timeout_seconds: Optional[float] = None  # Sin timeout por defecto


@dataclass
class WeatherConfig:
    """Configuración del servicio de clima."""
    backend: str = "static"  # static | open-meteo
    base_url: str = "https://api.open-meteo.com/v1/forecast"
    timeout_seconds: float = 10.0


@dataclass
class DashboardConfig:
    """Configuración del Dashboard."""
    alert_ttl_seconds: float = 5.0
    maps_api_key: Optional[str] = None
    default_center: Dict[str, float] = field(
        default_factory=lambda: {"latitude": 21.1458, "longitude": 79.0882}
    )
    default_zoom: int = 12


@dataclass
class FloodConfig:
    """Configuración completa de Flood Core."""
    thresholds: RuleThresholds = field(default_factory=RuleThresholds)
    llm: LLMConfig = field(default_factory=LLMConfig)
    weather: WeatherConfig = field(default_factory=WeatherConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "FloodConfig":
        """
        Construye la configuración desde variables de entorno.

        Args:
            environ: Mapeo de variables (por defecto os.environ)

        Returns:
            FloodConfig con los valores del entorno sobre los defaults
        """
        env = os.environ if environ is None else environ
        cfg = cls()

        cfg.llm.backend = env.get("FLOOD_LLM_BACKEND", cfg.llm.backend).lower()
        cfg.llm.api_key = env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY")
        cfg.llm.model = env.get("FLOOD_LLM_MODEL", cfg.llm.model)
        timeout = env.get("FLOOD_LLM_TIMEOUT_SECONDS")
        if timeout:
            cfg.llm.timeout_seconds = float(timeout)

        cfg.weather.backend = env.get("FLOOD_WEATHER_BACKEND", cfg.weather.backend).lower()

        ttl = env.get("FLOOD_ALERT_TTL_SECONDS")
        if ttl:
            cfg.dashboard.alert_ttl_seconds = float(ttl)
        # Credencial del proveedor de mapas: solo afecta a la UI
        cfg.dashboard.maps_api_key = env.get("GOOGLE_MAPS_API_KEY") or None

        return cfg


# Instancia global de configuración (puede ser sobrescrita)
config = FloodConfig()
