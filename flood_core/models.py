"""
Modelos de datos para Flood Core.
Define las entidades que cruzan la frontera con las capacidades externas
(lecturas de sensor, clima y evaluación de riesgo).

Los modelos se pueblan y serializan con nombres camelCase
(``deviceId``, ``waterLevelCm``...) y se usan en Python con snake_case.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FloodStatus(str, Enum):
    """Estados de riesgo de inundación, de menor a mayor severidad."""
    NORMAL = "Normal"
    WATCH = "Watch"
    WARNING = "Warning"
    PREDICTED_FLOOD = "Predicted_Flood"
    ERROR = "Error"

    @property
    def color(self) -> str:
        """Color del marcador en el mapa."""
        return STATUS_COLORS[self.value]

    @property
    def emoji(self) -> str:
        """Retorna emoji representativo del estado."""
        emojis = {
            "Normal": "🟢",
            "Watch": "🟡",
            "Warning": "🟠",
            "Predicted_Flood": "🔴",
            "Error": "⚪",
        }
        return emojis.get(self.value, "⚪")

    @property
    def priority(self) -> int:
        """Retorna prioridad numérica (mayor = más severo)."""
        priorities = {"Normal": 1, "Watch": 2, "Warning": 3, "Predicted_Flood": 4, "Error": 5}
        return priorities.get(self.value, 0)


STATUS_COLORS: Dict[str, str] = {
    "Normal": "green",
    "Watch": "yellow",
    "Warning": "orange",
    "Predicted_Flood": "red",
    "Error": "gray",
}


def status_color(status: Any) -> str:
    """Color para cualquier estado; los desconocidos se muestran en gris."""
    value = status.value if isinstance(status, FloodStatus) else status
    return STATUS_COLORS.get(value, "gray")


class FloodModel(BaseModel):
    """Base común: alias camelCase y población por nombre Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para serialización JSON (camelCase)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Location(FloodModel):
    """Ubicación geográfica de un sensor."""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90, description="The latitude of the sensor location.")
    longitude: float = Field(ge=-180, le=180, description="The longitude of the sensor location.")


class SensorReading(FloodModel):
    """
    Snapshot inmutable de un sensor de inundación.
    Lo produce la fuente de sensores y lo consumen todas las flows.
    """
    model_config = ConfigDict(frozen=True)

    device_id: str = Field(min_length=1, description="The unique identifier of the sensor device.")
    water_level_cm: float = Field(ge=0, description="The water level in centimeters.")
    rain_detected: bool = Field(description="Whether rain is detected by the sensor.")
    turbidity_ntu: float = Field(ge=0, description="The turbidity of the water in NTU.")
    temperature_c: float = Field(description="The temperature in Celsius.")
    humidity_percent: float = Field(ge=0, le=100, description="The humidity percentage.")
    pressure_hpa: float = Field(description="The pressure in Hectopascals.")
    location: Location = Field(description="The geographical location of the sensor.")

    def __str__(self) -> str:
        return (
            f"[{self.device_id}] water={self.water_level_cm}cm "
            f"rain={'yes' if self.rain_detected else 'no'} "
            f"turbidity={self.turbidity_ntu}NTU"
        )


class WeatherSnapshot(FloodModel):
    """Clima ambiente en la ubicación del sensor. Se obtiene en cada evaluación."""
    model_config = ConfigDict(frozen=True)

    temperature_celsius: float = Field(description="The current temperature in Celsius.")
    rainfall_millimeters: float = Field(ge=0, description="The current rainfall in millimeters.")


class RiskAssessment(FloodModel):
    """
    Resultado de una evaluación de riesgo.

    ``alert_message`` debería existir cuando el estado no es Normal; su
    ausencia es un defecto del backend, no un mensaje vacío.
    """
    model_config = ConfigDict(frozen=True)

    status: FloodStatus = Field(description="The flood risk status.")
    predicted_flood_risk: float = Field(
        ge=0, le=1, description="The predicted flood risk score (0-1)."
    )
    alert_message: Optional[str] = Field(
        default=None, description="A message to display to the user about the alert."
    )

    @property
    def requires_alert(self) -> bool:
        """Indica si el estado exige mostrar una alerta."""
        return self.status != FloodStatus.NORMAL

    @property
    def missing_alert_message(self) -> bool:
        """Estado no Normal sin mensaje de alerta."""
        return self.requires_alert and not self.alert_message

    def __str__(self) -> str:
        return (
            f"{self.status.emoji} {self.status.value} | "
            f"Riesgo: {self.predicted_flood_risk:.1%}"
        )


class SensorSummary(FloodModel):
    """Resumen breve de un sensor para el popup del mapa."""
    model_config = ConfigDict(frozen=True)

    summary: str = Field(description="A summary of the sensor data and flood risk assessment.")
    status: FloodStatus = Field(description="The flood risk status.")
