"""
Capacidades LLM para Flood Core.

La clasificación de riesgo se delega a una capacidad intercambiable:
- GeminiCapability: Generative Language API (respuesta JSON con esquema)
- RuleBasedCapability: clasificador determinista por umbrales (tests / modo degradado)
- FallbackCapability: compone una primaria con una secundaria
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type

import aiohttp
from pydantic import BaseModel

from .config import FloodConfig, LLMConfig, RuleThresholds, config as default_config
from .errors import CapabilityUnavailableError, SchemaViolationError
from .models import FloodStatus
from .schemas import response_schema, validate_record

logger = logging.getLogger(__name__)


@dataclass
class CapabilityRequest:
    """
    Petición a la capacidad LLM.

    Attributes:
        flow: Nombre de la flow que hace la petición
        prompt: Prompt ya renderizado
        output_model: Contrato de salida declarado
        context: Registro con el que se renderizó el prompt
    """
    flow: str
    prompt: str
    output_model: Type[BaseModel]
    context: Dict[str, Any] = field(default_factory=dict)


class LLMCapability(ABC):
    """
    🤖 Contrato de la capacidad: dado un prompt y un esquema de salida,
    retorna un registro estructurado, o None si no hay respuesta.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def generate(self, request: CapabilityRequest) -> Optional[Dict[str, Any]]:
        """
        Raises:
            CapabilityUnavailableError: Si la llamada falla
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"


# ═══════════════════════════════════════════════════════════════════════════════
# Gemini (Generative Language API)
# ═══════════════════════════════════════════════════════════════════════════════

class GeminiCapability(LLMCapability):
    """
    🌐 Capacidad respaldada por ``models/{model}:generateContent``.

    Solicita ``application/json`` con el esquema de salida de la flow y
    decodifica el texto del primer candidato.
    """

    def __init__(self, llm_config: Optional[LLMConfig] = None):
        self.config = llm_config or LLMConfig()

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def endpoint(self) -> str:
        return f"{self.config.base_url}/models/{self.config.model}:generateContent"

    def build_payload(self, request: CapabilityRequest) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "responseMimeType": "application/json",
                "responseSchema": response_schema(request.output_model),
            },
        }

    @staticmethod
    def extract_output(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Extrae el JSON del primer candidato; None si no hay salida utilizable."""
        candidates = data.get("candidates") or []
        if not candidates:
            return None
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text.strip():
            return None
        try:
            output = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(f"LLM returned non-JSON output: {text[:120]!r}")
            return None
        return output if isinstance(output, dict) else None

    async def generate(self, request: CapabilityRequest) -> Optional[Dict[str, Any]]:
        if not self.config.api_key:
            raise CapabilityUnavailableError("llm", "GEMINI_API_KEY is not configured")

        headers = {"x-goog-api-key": self.config.api_key, "Content-Type": "application/json"}
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    self.endpoint, json=self.build_payload(request), headers=headers
                ) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise CapabilityUnavailableError(
                            "llm", f"HTTP {response.status}: {body[:200]}"
                        )
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise CapabilityUnavailableError("llm", str(e) or type(e).__name__) from e

        if not isinstance(data, dict):
            raise CapabilityUnavailableError("llm", f"unexpected body: {data!r}")
        return self.extract_output(data)


# ═══════════════════════════════════════════════════════════════════════════════
# Clasificador por reglas
# ═══════════════════════════════════════════════════════════════════════════════

class RuleBasedCapability(LLMCapability):
    """
    🔧 Motor de Reglas - Clasificador determinista de riesgo de inundación.

    Evalúa nivel de agua, lluvia, turbidez y detección de lluvia contra
    umbrales configurables. Ignora el texto del prompt y trabaja sobre el
    registro de contexto, por lo que la misma entrada produce siempre la
    misma salida.

    Ejemplo:
        capability = RuleBasedCapability()
        capability.set_threshold(water_warning_cm=70)
        output = await capability.generate(request)
    """

    def __init__(self, cfg: Optional[FloodConfig] = None):
        self.config = cfg or default_config
        self._custom: Optional[RuleThresholds] = None

    @property
    def name(self) -> str:
        return "rules"

    @property
    def thresholds(self) -> RuleThresholds:
        return self._custom or self.config.thresholds

    def set_threshold(self, **overrides: float) -> None:
        """
        Define umbrales personalizados sobre los de la configuración.

        Args:
            overrides: Campos de RuleThresholds a sobrescribir
        """
        base = self.thresholds
        values = {name: getattr(base, name) for name in base.__dataclass_fields__}
        for name, value in overrides.items():
            if name not in values:
                raise ValueError(f"Unknown threshold '{name}'")
            values[name] = float(value)
        self._custom = RuleThresholds(**values)

    @staticmethod
    def _rainfall(context: Dict[str, Any]) -> float:
        if "rainfallMillimeters" in context:
            return float(context["rainfallMillimeters"])
        weather = context.get("weather") or {}
        return float(weather.get("rainfallMillimeters", 0.0))

    def evaluate(self, context: Dict[str, Any]) -> FloodStatus:
        """
        Determina el estado de riesgo a partir del registro de contexto.

        Returns:
            FloodStatus (nunca Error: ese estado lo asigna el llamador)
        """
        t = self.thresholds
        water = float(context.get("waterLevelCm", 0.0))
        rainfall = self._rainfall(context)

        # Orden de prioridad: inundación > warning > watch > normal
        if water >= t.water_flood_cm:
            status = FloodStatus.PREDICTED_FLOOD
        elif water >= t.water_warning_cm:
            status = FloodStatus.WARNING
        elif water >= t.water_watch_cm:
            status = FloodStatus.WATCH
        else:
            status = FloodStatus.NORMAL

        # Lluvia intensa escala un nivel si ya hay riesgo
        if rainfall >= t.rainfall_heavy_mm and status in (FloodStatus.WATCH, FloodStatus.WARNING):
            status = FloodStatus.WARNING if status == FloodStatus.WATCH else FloodStatus.PREDICTED_FLOOD
        return status

    def score(self, context: Dict[str, Any]) -> float:
        """Puntaje de riesgo en [0, 1] ponderando cada factor."""
        t = self.thresholds
        water = float(context.get("waterLevelCm", 0.0))
        turbidity = float(context.get("turbidityNtu", 0.0))
        rainfall = self._rainfall(context)

        water_factor = min(1.0, water / t.water_flood_cm) if t.water_flood_cm > 0 else 0.0
        rain_factor = min(1.0, rainfall / t.rainfall_heavy_mm) if t.rainfall_heavy_mm > 0 else 0.0
        turbidity_factor = min(1.0, turbidity / t.turbidity_high_ntu) if t.turbidity_high_ntu > 0 else 0.0
        detected = 1.0 if context.get("rainDetected") else 0.0

        score = water_factor * 0.6 + rain_factor * 0.2 + turbidity_factor * 0.1 + detected * 0.1
        return round(max(0.0, min(1.0, score)), 2)

    def _alert_text(self, context: Dict[str, Any], status: FloodStatus) -> str:
        water = float(context.get("waterLevelCm", 0.0))
        rainfall = self._rainfall(context)
        return (
            f"{status.value.replace('_', ' ')}: water level at {water:g} cm "
            f"with {rainfall:g} mm of rainfall"
        )

    def _reasoning(self, context: Dict[str, Any], status: FloodStatus) -> str:
        t = self.thresholds
        water = float(context.get("waterLevelCm", 0.0))
        turbidity = float(context.get("turbidityNtu", 0.0))
        notes = [f"water level {water:g} cm (watch {t.water_watch_cm:g}, warning {t.water_warning_cm:g}, flood {t.water_flood_cm:g})"]
        if self._rainfall(context) >= t.rainfall_heavy_mm:
            notes.append("heavy rainfall")
        if turbidity >= t.turbidity_high_ntu:
            notes.append(f"high turbidity {turbidity:g} NTU")
        if context.get("rainDetected"):
            notes.append("rain detected on site")
        return f"Status {status.value} from " + ", ".join(notes) + "."

    async def generate(self, request: CapabilityRequest) -> Optional[Dict[str, Any]]:
        ctx = request.context
        flow = request.flow

        if flow in ("assessFloodRisk", "intelligentFloodRiskAssessment"):
            status = self.evaluate(ctx)
            output: Dict[str, Any] = {"status": status.value, "predictedFloodRisk": self.score(ctx)}
            if status != FloodStatus.NORMAL:
                output["alertMessage"] = self._alert_text(ctx, status)
            if flow == "intelligentFloodRiskAssessment":
                output["reasoning"] = self._reasoning(ctx, status)
            return output

        if flow in ("generateAlertMessage", "generateInformativeAlertMessage"):
            status = FloodStatus(ctx.get("status", FloodStatus.NORMAL.value))
            risk = float(ctx.get("predictedFloodRisk", 0.0))
            text = (
                f"[{ctx.get('deviceId')}] {status.value.replace('_', ' ')} "
                f"(risk {risk:.0%}): water level {float(ctx.get('waterLevelCm', 0.0)):g} cm"
            )
            if flow == "generateInformativeAlertMessage":
                text += (
                    f", turbidity {float(ctx.get('turbidityNtu', 0.0)):g} NTU, "
                    f"rain {'detected' if ctx.get('rainDetected') else 'not detected'}"
                )
            return {"alertMessage": text}

        if flow == "summarizeSensorData":
            status = ctx.get("floodRiskStatus", FloodStatus.NORMAL.value)
            summary = (
                f"{ctx.get('deviceId')}: water {float(ctx.get('waterLevelCm', 0.0)):g} cm, "
                f"rain {'yes' if ctx.get('rainDetected') else 'no'}, status {status}."
            )
            return {"summary": summary, "status": status}

        logger.warning(f"Rule-based capability has no rule for flow '{flow}'")
        return None


# ═══════════════════════════════════════════════════════════════════════════════
# Composición
# ═══════════════════════════════════════════════════════════════════════════════

class FallbackCapability(LLMCapability):
    """
    Usa la primaria; si no está disponible, no responde o responde fuera
    del contrato de salida, delega en la secundaria.
    """

    def __init__(self, primary: LLMCapability, secondary: LLMCapability):
        self.primary = primary
        self.secondary = secondary

    @property
    def name(self) -> str:
        return f"{self.primary.name}+{self.secondary.name}"

    async def generate(self, request: CapabilityRequest) -> Optional[Dict[str, Any]]:
        try:
            output = await self.primary.generate(request)
        except CapabilityUnavailableError as e:
            return await self._delegate(request, e.reason)

        if output is None:
            return await self._delegate(request, "no output")
        try:
            validate_record(request.output_model, output)
        except SchemaViolationError as e:
            return await self._delegate(request, str(e))
        return output

    async def _delegate(self, request: CapabilityRequest, reason: str) -> Optional[Dict[str, Any]]:
        logger.warning(f"⚠️ {self.primary.name} unavailable for {request.flow} ({reason}); using {self.secondary.name}")
        return await self.secondary.generate(request)


def build_capability(cfg: Optional[FloodConfig] = None) -> LLMCapability:
    """Crea la capacidad configurada en ``cfg.llm.backend``."""
    cfg = cfg or default_config
    backend = cfg.llm.backend
    if backend == "rules":
        return RuleBasedCapability(cfg)
    if backend == "gemini":
        return GeminiCapability(cfg.llm)
    if backend == "gemini+rules":
        return FallbackCapability(GeminiCapability(cfg.llm), RuleBasedCapability(cfg))
    raise ValueError(f"Unknown LLM backend '{backend}'. Available: rules, gemini, gemini+rules")
