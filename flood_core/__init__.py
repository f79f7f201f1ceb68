"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                       🌊 Flood Core - Risk Orchestration 🌊                   ║
║                   Sensor Data, Weather & LLM for Flood-Watch                  ║
╚══════════════════════════════════════════════════════════════════════════════╝

Capa de orquestación de riesgo de inundación.
Recibe lecturas de sensores, las combina con el clima y delega la
clasificación en una capacidad LLM intercambiable, validando cada
respuesta contra su esquema.

Módulos:
- models / schemas: Entidades y contratos de cada flow
- weather: Proveedores de clima
- templates: Plantillas de prompt
- capabilities: Gemini, clasificador por reglas y composición
- flows / registry: Las cinco flows y su registro
- service: Evaluación por dispositivo con alarma segura
"""

from .models import FloodStatus, Location, SensorReading, WeatherSnapshot, RiskAssessment, SensorSummary
from .errors import (
    FloodCoreError,
    SchemaViolationError,
    TemplateError,
    CapabilityUnavailableError,
    MalformedCapabilityResponseError,
    FlowNotFoundError,
)
from .capabilities import LLMCapability, GeminiCapability, RuleBasedCapability, FallbackCapability
from .weather import WeatherProvider, StaticWeatherProvider, OpenMeteoWeatherProvider
from .registry import FlowRegistry, build_registry
from .service import FloodMonitorService, DeviceAssessment, FALLBACK_RISK, FALLBACK_SUMMARY

__all__ = [
    "FloodStatus",
    "Location",
    "SensorReading",
    "WeatherSnapshot",
    "RiskAssessment",
    "SensorSummary",
    "FloodCoreError",
    "SchemaViolationError",
    "TemplateError",
    "CapabilityUnavailableError",
    "MalformedCapabilityResponseError",
    "FlowNotFoundError",
    "LLMCapability",
    "GeminiCapability",
    "RuleBasedCapability",
    "FallbackCapability",
    "WeatherProvider",
    "StaticWeatherProvider",
    "OpenMeteoWeatherProvider",
    "FlowRegistry",
    "build_registry",
    "FloodMonitorService",
    "DeviceAssessment",
    "FALLBACK_RISK",
    "FALLBACK_SUMMARY",
]

__version__ = "1.0.0"
