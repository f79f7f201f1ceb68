#!/usr/bin/env python3
"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                        🌊 Mock Flood Sensors 🌊                              ║
║                   Virtual River Nodes for Flood-Watch                        ║
╚══════════════════════════════════════════════════════════════════════════════╝

Dispositivos de sensor simulados que alimentan el Dashboard.
Por defecto entrega las tres lecturas fijas de demostración; opcionalmente
añade ruido y permite inyectar crecidas para pruebas.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from flood_core.models import Location, SensorReading


@dataclass
class MockDevice:
    """Nodo simulado con su última lectura base."""
    device_id: str
    latitude: float
    longitude: float
    water_level_cm: float
    rain_detected: bool
    turbidity_ntu: float
    temperature_c: float
    humidity_percent: float
    pressure_hpa: float
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_reading(self) -> SensorReading:
        """Convierte el nodo en un SensorReading validado."""
        return SensorReading(
            device_id=self.device_id,
            water_level_cm=self.water_level_cm,
            rain_detected=self.rain_detected,
            turbidity_ntu=self.turbidity_ntu,
            temperature_c=self.temperature_c,
            humidity_percent=self.humidity_percent,
            pressure_hpa=self.pressure_hpa,
            location=Location(latitude=self.latitude, longitude=self.longitude),
        )


# Nodos de demostración (Nagpur)
MOCK_DEVICES: List[MockDevice] = [
    MockDevice("node_001", 21.1458, 79.0882, water_level_cm=65, rain_detected=True,
               turbidity_ntu=50, temperature_c=28, humidity_percent=70, pressure_hpa=1012),
    MockDevice("node_002", 21.1558, 79.1082, water_level_cm=30, rain_detected=False,
               turbidity_ntu=25, temperature_c=30, humidity_percent=65, pressure_hpa=1013),
    MockDevice("node_003", 21.1358, 79.0782, water_level_cm=90, rain_detected=True,
               turbidity_ntu=80, temperature_c=26, humidity_percent=75, pressure_hpa=1011),
]


def mock_readings() -> List[SensorReading]:
    """Lecturas fijas de los nodos de demostración."""
    return [device.to_reading() for device in MOCK_DEVICES]


class MockSensorAgent:
    """
    🤖 Generador de lecturas simuladas con ruido y crecidas inyectables.

    Ejemplo:
        agent = MockSensorAgent(noise_cm=3.0, seed=42)
        agent.inject_surge("node_002", extra_cm=70)
        readings = agent.read_all()
    """

    def __init__(
        self,
        devices: Optional[List[MockDevice]] = None,
        noise_cm: float = 0.0,
        seed: Optional[int] = None,
    ):
        self.devices = devices or MOCK_DEVICES
        self.noise_cm = noise_cm
        self._random = random.Random(seed)
        self._surges: Dict[str, float] = {}
        self.total_readings = 0

    def inject_surge(self, device_id: str, extra_cm: float) -> None:
        """
        Inyecta una crecida en un nodo hasta que se llame a clear_surges().

        Raises:
            KeyError: Si el nodo no existe
        """
        if device_id not in {d.device_id for d in self.devices}:
            raise KeyError(device_id)
        self._surges[device_id] = extra_cm
        print(f"\n🌊 [MockSensor] CRECIDA INYECTADA en {device_id}: +{extra_cm} cm\n")

    def clear_surges(self) -> None:
        self._surges.clear()

    def read(self, device: MockDevice) -> SensorReading:
        """Lectura de un nodo con ruido gaussiano y crecida, si la hay."""
        level = device.water_level_cm + self._surges.get(device.device_id, 0.0)
        if self.noise_cm:
            level += self._random.gauss(0, self.noise_cm)
        self.total_readings += 1
        reading = device.to_reading()
        return reading.model_copy(update={"water_level_cm": round(max(0.0, level), 1)})

    def read_all(self) -> List[SensorReading]:
        return [self.read(device) for device in self.devices]
