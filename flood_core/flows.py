"""
Flows de orquestación de Flood Core.

Todas siguen el mismo patrón en ``assess``:
1. Validar la entrada contra el esquema de la flow
2. Consultar el clima si la flow lo necesita
3. Renderizar el prompt con la entrada y el clima
4. Invocar la capacidad LLM con el prompt y el esquema de salida
5. Validar la respuesta (vacía o inválida -> MalformedCapabilityResponseError)
6. Retornar la salida validada

Ninguna flow ramifica sobre valores de sensor: la clasificación es de la capacidad.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel

from .capabilities import CapabilityRequest, LLMCapability
from .errors import CapabilityUnavailableError, MalformedCapabilityResponseError, SchemaViolationError
from .models import RiskAssessment, SensorSummary, WeatherSnapshot
from .schemas import (
    AlertMessageOutput,
    FlowSchema,
    ReasonedRiskAssessment,
    get_schema,
    validate_input,
    validate_output,
)
from .templates import render, to_record
from .weather import StaticWeatherProvider, WeatherProvider

logger = logging.getLogger(__name__)


class Flow:
    """
    🔄 Unidad de orquestación: clima + plantilla + capacidad + validación.

    Las subclases definen ``name`` (flow y plantilla) y ``uses_weather``.
    """

    name: str = ""
    description: str = ""
    uses_weather: bool = False

    def __init__(
        self,
        capability: LLMCapability,
        weather: Optional[WeatherProvider] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.capability = capability
        self.weather = weather or StaticWeatherProvider()
        self.timeout_seconds = timeout_seconds

    @property
    def schema(self) -> FlowSchema:
        return get_schema(self.name)

    def build_context(self, record: BaseModel, weather: Optional[WeatherSnapshot]) -> Dict[str, Any]:
        """Registro plano con el que se renderiza el prompt."""
        return to_record(record, weather)

    def finalize(self, record: BaseModel, output: BaseModel) -> BaseModel:
        """Ajuste final sobre la salida ya validada."""
        return output

    async def _invoke(self, request: CapabilityRequest) -> Optional[Dict[str, Any]]:
        call = self.capability.generate(request)
        if self.timeout_seconds is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise CapabilityUnavailableError(
                "llm", f"{self.name} timed out after {self.timeout_seconds}s"
            ) from e

    async def assess(self, data: Any) -> BaseModel:
        """
        Ejecuta la flow completa.

        Args:
            data: Diccionario camelCase o modelo con la entrada

        Returns:
            Instancia validada del modelo de salida de la flow

        Raises:
            SchemaViolationError: Entrada mal formada
            CapabilityUnavailableError: Clima o LLM no disponibles, o respuesta inválida
        """
        record = validate_input(self.name, data)

        weather = None
        if self.uses_weather:
            weather = await self.weather.get_weather(record.location)

        context = self.build_context(record, weather)
        prompt = render(self.name, context)
        request = CapabilityRequest(
            flow=self.name,
            prompt=prompt,
            output_model=self.schema.output_model,
            context=context,
        )

        raw = await self._invoke(request)
        if raw is None:
            raise MalformedCapabilityResponseError("llm", f"{self.name} returned no output")

        try:
            output = validate_output(self.name, raw)
        except SchemaViolationError as e:
            logger.warning(f"🚫 {self.name}: {e}")
            raise MalformedCapabilityResponseError("llm", str(e), violation=e) from e

        return self.finalize(record, output)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}', capability='{self.capability.name}')>"


class AlertMessageFlow(Flow):
    """Mensaje de alerta breve a partir de un estado ya evaluado."""
    name = "generateAlertMessage"
    description = "Generates an alert message summarizing flood status, location, water level, and risk."

    async def assess(self, data: Any) -> AlertMessageOutput:
        return await super().assess(data)


class AssessFloodRiskFlow(Flow):
    """Evaluación simple de riesgo con lectura + clima."""
    name = "assessFloodRisk"
    description = "Determines flood risk status based on sensor readings and weather data."
    uses_weather = True

    async def assess(self, data: Any) -> RiskAssessment:
        return await super().assess(data)


class IntelligentFloodRiskAssessmentFlow(Flow):
    """Evaluación de riesgo con razonamiento libre del modelo."""
    name = "intelligentFloodRiskAssessment"
    description = "Determines flood risk status based on sensor readings and weather data using LLM reasoning."
    uses_weather = True

    async def assess(self, data: Any) -> ReasonedRiskAssessment:
        return await super().assess(data)


class InformativeAlertMessageFlow(Flow):
    """Mensaje de alerta detallado con todas las lecturas del sensor."""
    name = "generateInformativeAlertMessage"
    description = "Generates an informative alert message summarizing flood status, sensor readings, and location."

    async def assess(self, data: Any) -> AlertMessageOutput:
        return await super().assess(data)


class SummarizeSensorDataFlow(Flow):
    """
    Resumen para el popup del mapa.

    El estado devuelto es el ``floodRiskStatus`` recibido (Normal si no se
    indica): es independiente del estado de la evaluación de riesgo.
    """
    name = "summarizeSensorData"
    description = "Summarizes sensor data and provides a risk assessment."
    uses_weather = True

    def build_context(self, record: BaseModel, weather: Optional[WeatherSnapshot]) -> Dict[str, Any]:
        return to_record(record, {"weather": weather.to_dict() if weather else {}})

    def finalize(self, record: BaseModel, output: SensorSummary) -> SensorSummary:
        return output.model_copy(update={"status": record.flood_risk_status})

    async def assess(self, data: Any) -> SensorSummary:
        return await super().assess(data)


FLOW_CLASSES = (
    AlertMessageFlow,
    AssessFloodRiskFlow,
    IntelligentFloodRiskAssessmentFlow,
    InformativeAlertMessageFlow,
    SummarizeSensorDataFlow,
)
