"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                      🗺️ Dashboard - Flood-Watch                              ║
║                    Mapa de sensores y alertas transitorias                   ║
╚══════════════════════════════════════════════════════════════════════════════╝

Capa de visualización de Flood-Watch.
Consume los resultados de FloodMonitorService y:
- Pinta un marcador por dispositivo, coloreado por estado de riesgo
- Muestra la ventana de información del dispositivo seleccionado
- Emite banners de alerta que expiran a los 5 segundos

Components:
    - state: Estado inmutable y transiciones puras (reduce)
    - DashboardStore: Contenedor thread-safe del estado
    - api: Endpoints FastAPI para el frontend
"""

from .models import (
    AlertBanner,
    DeviceMarker,
    DashboardState,
    RefreshCompleted,
    SensorSelected,
    SelectionCleared,
    ClockTick,
)
from .state import reduce, initial_state
from .store import DashboardStore, MAP_ERROR_MESSAGE

__all__ = [
    "AlertBanner",
    "DeviceMarker",
    "DashboardState",
    "RefreshCompleted",
    "SensorSelected",
    "SelectionCleared",
    "ClockTick",
    "reduce",
    "initial_state",
    "DashboardStore",
    "MAP_ERROR_MESSAGE",
]

__version__ = "1.0.0"
