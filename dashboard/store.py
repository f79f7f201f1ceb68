"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                     🗺️ Dashboard Store - Flood-Watch                         ║
║                   Estado compartido del mapa de sensores                     ║
╚══════════════════════════════════════════════════════════════════════════════╝

Mantiene el DashboardState actual y lo reemplaza aplicando eventos con
``dashboard.state.reduce``. Notifica a los suscriptores en cada cambio.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from flood_core.config import FloodConfig, config as default_config
from flood_core.models import SensorReading
from flood_core.service import DeviceAssessment

from .models import ClockTick, DashboardState, RefreshCompleted, SelectionCleared, SensorSelected
from .state import build_markers, info_window, initial_state, reduce

logger = logging.getLogger(__name__)

MAP_ERROR_MESSAGE = "Please set the GOOGLE_MAPS_API_KEY environment variable to display the map."


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class DashboardStore:
    """
    🗺️ Dashboard Store - Contenedor thread-safe del estado.

    El reloj es inyectable para que los tests controlen la expiración
    de los banners.

    Ejemplo:
        store = DashboardStore(readings=mock_readings())
        store.apply_refresh(await service.refresh(store.state.devices))
        store.select("node_003")
        print(store.get_alerts())
    """

    def __init__(
        self,
        readings: Iterable[SensorReading] = (),
        clock: Optional[Callable[[], int]] = None,
        cfg: Optional[FloodConfig] = None,
    ):
        self.config = cfg or default_config
        self.clock = clock or wall_clock_ms
        self.ttl_ms = int(self.config.dashboard.alert_ttl_seconds * 1000)

        self._state = initial_state(readings)
        self._subscribers: List[Callable[[DashboardState], None]] = []
        self._lock = threading.Lock()

    @property
    def state(self) -> DashboardState:
        with self._lock:
            return self._state

    def dispatch(self, event: Any) -> DashboardState:
        """
        Aplica un evento y publica el nuevo estado.

        Raises:
            KeyError: Si el evento selecciona un dispositivo desconocido
        """
        with self._lock:
            previous = self._state
            self._state = reduce(previous, event, ttl_ms=self.ttl_ms)
            current = self._state

        for defect in current.defects[len(previous.defects):]:
            logger.warning(f"⚠️ Risk without alert message: {defect}")
        for banner in current.alerts:
            if banner not in previous.alerts:
                logger.info(f"🔔 {banner.message}")

        if current is not previous:
            for callback in list(self._subscribers):
                try:
                    callback(current)
                except Exception as e:
                    logger.error(f"Error en subscriber callback: {e}")
        return current

    def apply_refresh(self, results: Mapping[str, DeviceAssessment]) -> DashboardState:
        """Incorpora el resultado de un ciclo de FloodMonitorService.refresh()."""
        return self.dispatch(RefreshCompleted(results=dict(results), at_ms=self.clock()))

    def select(self, device_id: str) -> DashboardState:
        return self.dispatch(SensorSelected(device_id=device_id, at_ms=self.clock()))

    def clear_selection(self) -> DashboardState:
        return self.dispatch(SelectionCleared(at_ms=self.clock()))

    def tick(self) -> DashboardState:
        """Expira los banners vencidos según el reloj actual."""
        return self.dispatch(ClockTick(at_ms=self.clock()))

    def add_subscriber(self, callback: Callable[[DashboardState], None]) -> None:
        """Agrega un suscriptor para cambios de estado."""
        self._subscribers.append(callback)

    def remove_subscriber(self, callback: Callable) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # ───────────────────────────────────────────────────────────────────────────
    # Vistas para el frontend
    # ───────────────────────────────────────────────────────────────────────────

    def get_alerts(self) -> List[Dict[str, Any]]:
        """Banners vigentes, del más antiguo al más reciente."""
        state = self.tick()
        return [alert.to_dict() for alert in state.alerts]

    def get_map_config(self) -> Dict[str, Any]:
        dashboard = self.config.dashboard
        return {
            "apiKey": dashboard.maps_api_key,
            "center": dict(dashboard.default_center),
            "zoom": dashboard.default_zoom,
        }

    def get_dashboard_data(self) -> Dict[str, Any]:
        """
        Estructura completa para el Dashboard.

        Returns:
            Diccionario con markers, alerts, selected, summaries, risks,
            defects, map y mapError
        """
        state = self.tick()
        return {
            "markers": [marker.to_dict() for marker in build_markers(state)],
            "alerts": [alert.to_dict() for alert in state.alerts],
            "selected": info_window(state),
            "summaries": {device_id: s.to_dict() for device_id, s in state.summaries.items()},
            "risks": {device_id: r.to_dict() for device_id, r in state.risks.items()},
            "defects": list(state.defects),
            "lastRefreshMs": state.last_refresh_ms,
            "map": self.get_map_config(),
            "mapError": None if self.config.dashboard.maps_api_key else MAP_ERROR_MESSAGE,
        }

    def reset(self, readings: Iterable[SensorReading] = ()) -> None:
        """Vuelve al estado inicial (útil para tests)."""
        with self._lock:
            self._state = initial_state(readings)

