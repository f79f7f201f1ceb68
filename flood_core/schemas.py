"""
Registro de esquemas de las flows.

Cada flow declara un contrato de entrada y uno de salida. Todo valor que
cruce la frontera con la capacidad LLM, en cualquier dirección, se valida
aquí y se rechaza con errores a nivel de campo.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, Field, ValidationError

from .errors import SchemaViolationError
from .models import FloodModel, FloodStatus, Location, RiskAssessment, SensorReading, SensorSummary


# ═══════════════════════════════════════════════════════════════════════════════
# Contratos por flow
# ═══════════════════════════════════════════════════════════════════════════════

class AlertMessageInput(FloodModel):
    """Entrada de la generación de mensaje de alerta."""
    device_id: str = Field(min_length=1, description="The unique identifier of the sensor device.")
    status: FloodStatus = Field(description="The flood risk status.")
    water_level_cm: float = Field(ge=0, description="The water level in centimeters.")
    location: Location = Field(description="The geographical location of the sensor.")
    predicted_flood_risk: float = Field(ge=0, le=1, description="The predicted flood risk score (0-1).")


class AlertMessageOutput(FloodModel):
    alert_message: str = Field(min_length=1, description="The generated alert message.")


class InformativeAlertInput(SensorReading):
    """Lectura completa más el estado ya evaluado."""
    status: FloodStatus = Field(description="The flood risk status.")
    predicted_flood_risk: float = Field(ge=0, le=1, description="The predicted flood risk score (0-1).")


class ReasonedRiskAssessment(RiskAssessment):
    """Evaluación con el razonamiento libre del modelo."""
    reasoning: Optional[str] = Field(
        default=None, description="Your reasoning for the flood risk status and predicted risk score."
    )


class SummarizeInput(SensorReading):
    """Lectura a resumir; el estado de riesgo es opcional."""
    flood_risk_status: FloodStatus = Field(default=FloodStatus.NORMAL, description="The flood risk status.")
    flood_risk_reasoning: str = Field(default="No risk", description="The reasoning behind the flood risk status.")


# ═══════════════════════════════════════════════════════════════════════════════
# Registro
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FlowSchema:
    """Contrato de una flow: nombre, modelo de entrada y modelo de salida."""
    name: str
    input_model: Type[BaseModel]
    output_model: Type[BaseModel]


SCHEMAS: Dict[str, FlowSchema] = {
    schema.name: schema
    for schema in (
        FlowSchema("generateAlertMessage", AlertMessageInput, AlertMessageOutput),
        FlowSchema("assessFloodRisk", SensorReading, RiskAssessment),
        FlowSchema("intelligentFloodRiskAssessment", SensorReading, ReasonedRiskAssessment),
        FlowSchema("generateInformativeAlertMessage", InformativeAlertInput, AlertMessageOutput),
        FlowSchema("summarizeSensorData", SummarizeInput, SensorSummary),
    )
}


def get_schema(flow_name: str) -> FlowSchema:
    """Obtiene el contrato de una flow (KeyError si no existe)."""
    return SCHEMAS[flow_name]


def _field_errors(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "__root__",
            "message": err["msg"],
        }
        for err in exc.errors()
    ]


def validate_record(model: Type[BaseModel], data: Any) -> BaseModel:
    """
    Valida ``data`` contra ``model``.

    Args:
        model: Modelo pydantic del contrato
        data: Diccionario, instancia del modelo u otro modelo compatible

    Returns:
        Instancia validada de ``model``

    Raises:
        SchemaViolationError: Si algún campo viola tipo, rango o enumeración
    """
    # Las instancias también se revalidan: pueden venir de model_construct
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True)
    if data is None or not isinstance(data, dict):
        raise SchemaViolationError(
            model.__name__,
            [{"field": "__root__", "message": f"expected an object, got {type(data).__name__}"}],
        )
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise SchemaViolationError(model.__name__, _field_errors(exc)) from exc


def validate_input(flow_name: str, data: Any) -> BaseModel:
    return validate_record(get_schema(flow_name).input_model, data)


def validate_output(flow_name: str, data: Any) -> BaseModel:
    return validate_record(get_schema(flow_name).output_model, data)


# ═══════════════════════════════════════════════════════════════════════════════
# Esquema de respuesta para el LLM
# ═══════════════════════════════════════════════════════════════════════════════

_TYPE_MAP = {
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "object": "OBJECT",
    "array": "ARRAY",
}


def response_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """
    Traduce un modelo de salida al subconjunto OpenAPI que acepta
    ``generationConfig.responseSchema``: referencias resueltas, opcionales
    como ``nullable`` y sin títulos ni defaults.
    """
    raw = model.model_json_schema(by_alias=True)
    defs = raw.get("$defs", {})

    def convert(node: Dict[str, Any]) -> Dict[str, Any]:
        if "$ref" in node:
            target = defs[node["$ref"].split("/")[-1]]
            merged = dict(target)
            if "description" in node:
                merged["description"] = node["description"]
            return convert(merged)

        if "allOf" in node and len(node["allOf"]) == 1:
            merged = {**node["allOf"][0], **{k: v for k, v in node.items() if k != "allOf"}}
            return convert(merged)

        if "anyOf" in node:
            options = [opt for opt in node["anyOf"] if opt.get("type") != "null"]
            result = convert(options[0]) if options else {"type": "STRING"}
            result["nullable"] = True
            if "description" in node:
                result["description"] = node["description"]
            return result

        result: Dict[str, Any] = {"type": _TYPE_MAP.get(node.get("type", "string"), "STRING")}
        if "description" in node:
            result["description"] = node["description"]
        if "enum" in node:
            result["enum"] = [str(value) for value in node["enum"]]
        if "properties" in node:
            result["properties"] = {
                name: convert(prop) for name, prop in node["properties"].items()
            }
            if node.get("required"):
                result["required"] = list(node["required"])
        if "items" in node:
            result["items"] = convert(node["items"])
        return result

    return convert(raw)
