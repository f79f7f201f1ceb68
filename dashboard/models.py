"""
Modelos de datos para el Dashboard.
Define el estado de la aplicación, los eventos que lo transforman y las
estructuras que consume el frontend del mapa.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from flood_core.models import RiskAssessment, SensorReading, SensorSummary, status_color
from flood_core.service import DeviceAssessment


@dataclass(frozen=True)
class AlertBanner:
    """
    Banner transitorio de alerta.
    Se muestra desde ``created_at_ms`` hasta ``expires_at_ms`` (exclusivo).
    """
    device_id: str
    message: str
    created_at_ms: int
    expires_at_ms: int

    def is_expired(self, now_ms: int) -> bool:
        return now_ms >= self.expires_at_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deviceId": self.device_id,
            "message": self.message,
            "createdAtMs": self.created_at_ms,
            "expiresAtMs": self.expires_at_ms,
        }


@dataclass(frozen=True)
class DeviceMarker:
    """Marcador de un dispositivo en el mapa, coloreado por estado."""
    device_id: str
    latitude: float
    longitude: float
    status: str
    color: str

    @classmethod
    def from_state(cls, reading: SensorReading, risk: Optional[RiskAssessment]) -> "DeviceMarker":
        # Sin evaluación todavía: se pinta como Normal
        status = risk.status.value if risk else "Normal"
        return cls(
            device_id=reading.device_id,
            latitude=reading.location.latitude,
            longitude=reading.location.longitude,
            status=status,
            color=status_color(status),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deviceId": self.device_id,
            "position": {"latitude": self.latitude, "longitude": self.longitude},
            "status": self.status,
            "color": self.color,
        }


@dataclass(frozen=True)
class DashboardState:
    """
    Estado completo del Dashboard.

    Inmutable: cada evento produce un estado nuevo (ver ``dashboard.state``).
    ``defects`` registra estados no Normal que llegaron sin mensaje de alerta.
    """
    devices: Tuple[SensorReading, ...] = ()
    selected_device_id: Optional[str] = None
    summaries: Mapping[str, SensorSummary] = field(default_factory=dict)
    risks: Mapping[str, RiskAssessment] = field(default_factory=dict)
    alerts: Tuple[AlertBanner, ...] = ()
    defects: Tuple[str, ...] = ()
    last_refresh_ms: Optional[int] = None

    def get_device(self, device_id: str) -> Optional[SensorReading]:
        for reading in self.devices:
            if reading.device_id == device_id:
                return reading
        return None

    @property
    def selected_device(self) -> Optional[SensorReading]:
        if self.selected_device_id is None:
            return None
        return self.get_device(self.selected_device_id)


# ═══════════════════════════════════════════════════════════════════════════════
# Eventos
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RefreshCompleted:
    """Terminó un ciclo de evaluación de todos los dispositivos."""
    results: Mapping[str, DeviceAssessment]
    at_ms: int


@dataclass(frozen=True)
class SensorSelected:
    """El usuario hizo clic en el marcador de un dispositivo."""
    device_id: str
    at_ms: int


@dataclass(frozen=True)
class SelectionCleared:
    """El usuario cerró la ventana de información."""
    at_ms: int = 0


@dataclass(frozen=True)
class ClockTick:
    """Avance del reloj: expira los banners vencidos."""
    at_ms: int
