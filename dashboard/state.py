"""
Transiciones puras del estado del Dashboard: ``reduce(state, event) -> state``.

Ninguna función de este módulo tiene efectos secundarios ni lee el reloj;
el tiempo llega siempre dentro del evento.
"""

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from flood_core.models import FloodStatus, SensorReading

from .models import (
    AlertBanner,
    ClockTick,
    DashboardState,
    DeviceMarker,
    RefreshCompleted,
    SelectionCleared,
    SensorSelected,
)

ALERT_TTL_MS = 5000


def initial_state(readings: Iterable[SensorReading] = ()) -> DashboardState:
    """Estado inicial: dispositivos conocidos, sin evaluaciones ni alertas."""
    return DashboardState(devices=tuple(readings))


def format_alert(device_id: str, alert_message: str) -> str:
    """Texto del banner: ``[node_003]: High water level``."""
    return f"[{device_id}]: {alert_message}"


def _alert_for_selection(state: DashboardState, at_ms: int, ttl_ms: int) -> DashboardState:
    """Agrega el banner del dispositivo seleccionado si su estado no es Normal."""
    device_id = state.selected_device_id
    if device_id is None:
        return state
    risk = state.risks.get(device_id)
    if risk is None or risk.status == FloodStatus.NORMAL:
        return state

    if not risk.alert_message:
        defect = f"{device_id}: status {risk.status.value} without alertMessage"
        if defect in state.defects:
            return state
        return replace(state, defects=state.defects + (defect,))

    banner = AlertBanner(
        device_id=device_id,
        message=format_alert(device_id, risk.alert_message),
        created_at_ms=at_ms,
        expires_at_ms=at_ms + ttl_ms,
    )
    return replace(state, alerts=state.alerts + (banner,))


def expire_alerts(state: DashboardState, now_ms: int) -> DashboardState:
    """Elimina solo los banners vencidos; el resto queda intacto y en orden."""
    remaining = tuple(alert for alert in state.alerts if not alert.is_expired(now_ms))
    if len(remaining) == len(state.alerts):
        return state
    return replace(state, alerts=remaining)


def reduce(state: DashboardState, event: Any, ttl_ms: int = ALERT_TTL_MS) -> DashboardState:
    """
    Aplica un evento al estado.

    Args:
        state: Estado actual
        event: RefreshCompleted | SensorSelected | SelectionCleared | ClockTick
        ttl_ms: Duración de los banners de alerta

    Returns:
        Nuevo DashboardState

    Raises:
        KeyError: Si se selecciona un dispositivo desconocido
        TypeError: Si el evento no es reconocido
    """
    if isinstance(event, ClockTick):
        return expire_alerts(state, event.at_ms)

    if isinstance(event, RefreshCompleted):
        state = expire_alerts(state, event.at_ms)
        devices = list(state.devices)
        known = {reading.device_id: i for i, reading in enumerate(devices)}
        summaries = dict(state.summaries)
        risks = dict(state.risks)
        for device_id, result in event.results.items():
            if device_id in known:
                devices[known[device_id]] = result.reading
            else:
                known[device_id] = len(devices)
                devices.append(result.reading)
            summaries[device_id] = result.summary
            risks[device_id] = result.risk
        state = replace(
            state,
            devices=tuple(devices),
            summaries=summaries,
            risks=risks,
            last_refresh_ms=event.at_ms,
        )
        return _alert_for_selection(state, event.at_ms, ttl_ms)

    if isinstance(event, SensorSelected):
        if state.get_device(event.device_id) is None:
            raise KeyError(event.device_id)
        state = expire_alerts(state, event.at_ms)
        state = replace(state, selected_device_id=event.device_id)
        return _alert_for_selection(state, event.at_ms, ttl_ms)

    if isinstance(event, SelectionCleared):
        return replace(state, selected_device_id=None)

    raise TypeError(f"Unknown dashboard event: {event!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Vistas derivadas
# ═══════════════════════════════════════════════════════════════════════════════

def build_markers(state: DashboardState) -> List[DeviceMarker]:
    return [DeviceMarker.from_state(reading, state.risks.get(reading.device_id)) for reading in state.devices]


def info_window(state: DashboardState) -> Optional[Dict[str, Any]]:
    """Contenido de la ventana de información del dispositivo seleccionado."""
    reading = state.selected_device
    if reading is None:
        return None

    payload: Dict[str, Any] = {
        "deviceId": reading.device_id,
        "position": reading.location.to_dict(),
        "waterLevelCm": reading.water_level_cm,
        "rain": "Yes" if reading.rain_detected else "No",
        "turbidityNtu": reading.turbidity_ntu,
    }
    summary = state.summaries.get(reading.device_id)
    risk = state.risks.get(reading.device_id)
    if summary is not None:
        payload["summary"] = summary.summary
        payload["summaryStatus"] = summary.status.value
    if risk is not None:
        payload["badge"] = risk.status.value
    return payload
