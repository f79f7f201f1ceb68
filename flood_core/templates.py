"""
Renderizador de plantillas de prompt.

Sustitución pura y determinista: ``{campo}`` o ``{campo.subcampo}`` se
resuelve por nombre dentro del registro (diccionario o modelo). Un campo
ausente es un error de programación y lanza ``TemplateError``.
"""

import string
from typing import Any, Dict, Mapping, Tuple

from pydantic import BaseModel

from .errors import TemplateError


ALERT_MESSAGE_TEMPLATE = (
    "Generate an alert message summarizing the flood status for device {deviceId} "
    "at location (Lat: {location.latitude}, Lng: {location.longitude}). "
    "The water level is {waterLevelCm} cm, the flood risk status is {status}, "
    "and the predicted flood risk is {predictedFloodRisk}. "
    "The alert message should be concise and informative."
)

_RISK_CONTEXT = """\
Sensor Data:
- Water Level: {waterLevelCm} cm
- Rain Detected: {rainDetected}
- Turbidity: {turbidityNtu} NTU
- Temperature: {temperatureC} °C
- Humidity: {humidityPercent}%
- Pressure: {pressureHpa} hPa

Weather Information:
- Rainfall: {rainfallMillimeters} mm
- Temperature: {temperatureCelsius} °C

Consider the following factors when determining the flood risk:
- High water level increases the risk.
- Heavy rainfall increases the risk.
- High turbidity may indicate increased runoff and potential flooding.

Output the flood risk status as one of the following: Normal, Watch, Warning, Predicted_Flood, Error. \
Also output a predicted flood risk score between 0 and 1.
"""

ASSESS_FLOOD_RISK_TEMPLATE = (
    "Given the following sensor data and weather information for device ID {deviceId} "
    "at location (Lat: {location.latitude}, Lng: {location.longitude}), "
    "determine the flood risk status and a risk score between 0 and 1.\n\n"
    + _RISK_CONTEXT
    + "If the status is above \"Normal\", populate the alertMessage field with a message "
    "to display to the user. For example, if the status is \"Warning\", the alert message "
    "should contain the current water level and rainfall.\n"
)

INTELLIGENT_FLOOD_RISK_TEMPLATE = (
    "Given the following sensor data and weather information for device ID {deviceId} "
    "at location (Lat: {location.latitude}, Lng: {location.longitude}), "
    "determine the flood risk status and a risk score between 0 and 1 based on your reasoning.\n\n"
    + _RISK_CONTEXT
    + "\nExplain your reasoning for the flood risk status and predicted risk score in the "
    "reasoning field. If the status is above \"Normal\", populate the alertMessage field with "
    "a message to display to the user. For example, if the status is \"Warning\", the alert "
    "message should contain the current water level and rainfall.\n"
)

INFORMATIVE_ALERT_TEMPLATE = (
    "Generate an informative alert message summarizing the flood status for device {deviceId} "
    "at location (Lat: {location.latitude}, Lng: {location.longitude}).\n"
    "Include sensor readings such as water level ({waterLevelCm} cm), rain detected "
    "({rainDetected}), turbidity ({turbidityNtu} NTU), temperature ({temperatureC} °C), "
    "humidity ({humidityPercent}%), and pressure ({pressureHpa} hPa).\n"
    "The flood risk status is {status}, and the predicted flood risk is {predictedFloodRisk}. "
    "The alert message should be concise, informative, and actionable.\n"
)

SUMMARIZE_SENSOR_DATA_TEMPLATE = """\
Here is the sensor data for device ID {deviceId}:
Water level: {waterLevelCm} cm
Rain detected: {rainDetected}
Turbidity: {turbidityNtu} NTU
Temperature: {temperatureC} C
Humidity: {humidityPercent}%
Pressure: {pressureHpa} hPa

The current weather conditions are:
Temperature: {weather.temperatureCelsius} C
Rainfall: {weather.rainfallMillimeters} mm

Flood Risk Status: {floodRiskStatus}
Reasoning: {floodRiskReasoning}

Summarize the sensor data and flood risk assessment in a concise sentence or two for a popup display. \
Be very brief.
Return the flood risk status in the output.
"""

TEMPLATES: Dict[str, str] = {
    "generateAlertMessage": ALERT_MESSAGE_TEMPLATE,
    "assessFloodRisk": ASSESS_FLOOD_RISK_TEMPLATE,
    "intelligentFloodRiskAssessment": INTELLIGENT_FLOOD_RISK_TEMPLATE,
    "generateInformativeAlertMessage": INFORMATIVE_ALERT_TEMPLATE,
    "summarizeSensorData": SUMMARIZE_SENSOR_DATA_TEMPLATE,
}


class _RecordFormatter(string.Formatter):
    """Formatter que resuelve rutas con puntos en diccionarios y objetos."""

    def get_field(self, field_name: str, args: Any, kwargs: Mapping[str, Any]) -> Tuple[Any, str]:
        value: Any = kwargs
        for part in field_name.split("."):
            if isinstance(value, Mapping):
                if part not in value:
                    raise TemplateError(f"Template references absent field '{field_name}'")
                value = value[part]
            elif hasattr(value, part):
                value = getattr(value, part)
            else:
                raise TemplateError(f"Template references absent field '{field_name}'")
        return value, field_name

    def format_field(self, value: Any, format_spec: str) -> str:
        # Booleanos y enums tal como los ve el LLM en JSON
        if isinstance(value, bool):
            return "true" if value else "false"
        if hasattr(value, "value") and not format_spec:
            value = value.value
        return super().format_field(value, format_spec)


_formatter = _RecordFormatter()


def to_record(*parts: Any) -> Dict[str, Any]:
    """
    Combina modelos y diccionarios en un único registro camelCase.
    Los campos de las partes posteriores pisan a los anteriores.
    """
    record: Dict[str, Any] = {}
    for part in parts:
        if part is None:
            continue
        if isinstance(part, BaseModel):
            part = part.model_dump(mode="json", by_alias=True)
        record.update(part)
    return record


def render_template(template: str, record: Mapping[str, Any]) -> str:
    """Renderiza un texto de plantilla con el registro dado."""
    try:
        return _formatter.vformat(template, (), record)
    except (IndexError, ValueError) as e:
        raise TemplateError(f"Malformed template: {e}") from e


def render(template_name: str, record: Mapping[str, Any]) -> str:
    """
    Renderiza la plantilla registrada ``template_name``.

    Args:
        template_name: Nombre de la plantilla (una por flow)
        record: Registro validado de entrada más los campos de clima

    Returns:
        Prompt listo para la capacidad LLM

    Raises:
        TemplateError: Plantilla desconocida o campo ausente
    """
    if template_name not in TEMPLATES:
        available = ", ".join(TEMPLATES) or "none"
        raise TemplateError(f"Template '{template_name}' not found. Available: {available}")
    return render_template(TEMPLATES[template_name], record)
