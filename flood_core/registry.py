"""
Registro de flows de Flood Core.
Permite registrar, listar y obtener flows por nombre.
"""

import logging
from typing import Dict, List, Optional

from .capabilities import LLMCapability, build_capability
from .config import FloodConfig, config as default_config
from .errors import FlowNotFoundError
from .flows import FLOW_CLASSES, Flow
from .weather import WeatherProvider, build_weather_provider

logger = logging.getLogger(__name__)

# Nombres históricos que apuntan a la misma flow
FLOW_ALIASES: Dict[str, str] = {
    "floodRiskAssessment": "intelligentFloodRiskAssessment",
}


class FlowRegistry:
    """
    📦 Registro central de flows.

    Example:
        >>> registry = FlowRegistry.with_defaults(capability, weather)
        >>> flow = registry.get("assessFloodRisk")
        >>> result = await flow.assess(reading)
    """

    def __init__(self):
        self._flows: Dict[str, Flow] = {}

    @classmethod
    def with_defaults(
        cls,
        capability: LLMCapability,
        weather: Optional[WeatherProvider] = None,
        timeout_seconds: Optional[float] = None,
    ) -> "FlowRegistry":
        """Crea un registro con las cinco flows estándar."""
        registry = cls()
        for flow_cls in FLOW_CLASSES:
            registry.register(flow_cls(capability, weather, timeout_seconds=timeout_seconds))
        return registry

    def register(self, flow: Flow) -> None:
        """
        Registra una flow.

        Raises:
            ValueError: Si ya hay una flow con ese nombre
        """
        if flow.name in self._flows:
            raise ValueError(f"Flow '{flow.name}' is already registered")
        self._flows[flow.name] = flow
        logger.debug(f"📦 Flow registrada: {flow!r}")

    def unregister(self, name: str) -> None:
        self._flows.pop(name, None)

    def get(self, name: str) -> Flow:
        """
        Obtiene una flow por nombre (o alias).

        Raises:
            FlowNotFoundError: Si la flow no existe
        """
        resolved = FLOW_ALIASES.get(name, name)
        if resolved not in self._flows:
            available = ", ".join(self._flows.keys()) or "none"
            raise FlowNotFoundError(f"Flow '{name}' not found. Available: {available}")
        return self._flows[resolved]

    def list_flows(self) -> List[str]:
        return list(self._flows.keys())

    def get_all(self) -> Dict[str, Flow]:
        return self._flows.copy()

    def clear(self) -> None:
        """Elimina todas las flows del registro (útil para tests)."""
        self._flows.clear()

    def __len__(self) -> int:
        return len(self._flows)

    def __contains__(self, name: str) -> bool:
        return FLOW_ALIASES.get(name, name) in self._flows


def build_registry(cfg: Optional[FloodConfig] = None) -> FlowRegistry:
    """Registro con la capacidad y el clima definidos en la configuración."""
    cfg = cfg or default_config
    return FlowRegistry.with_defaults(
        build_capability(cfg),
        build_weather_provider(cfg.weather),
        timeout_seconds=cfg.llm.timeout_seconds,
    )
