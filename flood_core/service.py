"""
Servicio principal de Flood Core.
Orquesta la evaluación de cada dispositivo para el Dashboard.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .config import FloodConfig, config as default_config
from .errors import SchemaViolationError
from .models import FloodStatus, RiskAssessment, SensorReading, SensorSummary
from .registry import FlowRegistry, build_registry
from .schemas import validate_record

logger = logging.getLogger(__name__)

# Política canónica de degradación: ante cualquier fallo, alarma segura
FALLBACK_RISK = RiskAssessment(
    status=FloodStatus.ERROR,
    predicted_flood_risk=1,
    alert_message="Error assessing flood risk",
)
FALLBACK_SUMMARY = SensorSummary(
    summary="Error summarizing data",
    status=FloodStatus.ERROR,
)


@dataclass
class DeviceAssessment:
    """
    Resultado por dispositivo de un ciclo de refresco.

    ``summary.status`` y ``risk.status`` se calculan por separado y no se
    reconcilian entre sí.
    """
    reading: SensorReading
    summary: SensorSummary
    risk: RiskAssessment
    fallback: bool = False
    error: Optional[str] = None
    processed_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def device_id(self) -> str:
        return self.reading.device_id

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para serialización JSON."""
        return {
            "deviceId": self.device_id,
            "reading": self.reading.to_dict(),
            "summary": self.summary.to_dict(),
            "risk": self.risk.to_dict(),
            "fallback": self.fallback,
            "error": self.error,
            "processedAt": self.processed_at,
        }

    def __str__(self) -> str:
        return f"{self.risk.status.emoji} [{self.device_id}] {self.risk}"


class FloodMonitorService:
    """
    🌊 Flood Monitor Service - Orquestador por dispositivo.

    Para cada lectura:
    1. Resume los datos del sensor (summarizeSensorData)
    2. Evalúa el riesgo con razonamiento (intelligentFloodRiskAssessment)
    3. Ante cualquier error aplica la alarma segura (Error, riesgo 1)

    Ejemplo:
        service = FloodMonitorService()
        results = await service.refresh(readings)
        print(results["node_003"].risk.status)
    """

    SUMMARY_FLOW = "summarizeSensorData"
    RISK_FLOW = "intelligentFloodRiskAssessment"

    def __init__(
        self,
        registry: Optional[FlowRegistry] = None,
        cfg: Optional[FloodConfig] = None,
    ):
        self.config = cfg or default_config
        self.registry = registry or build_registry(self.config)

        # Estadísticas
        self._processed_count = 0
        self._fallback_count = 0
        self._status_counts: Dict[str, int] = {status.value: 0 for status in FloodStatus}
        self._start_time = datetime.now()

    async def assess_device(self, reading: Any) -> DeviceAssessment:
        """
        Evalúa un dispositivo. Los fallos de las flows se convierten en la
        alarma segura para que un dispositivo no bloquee a los demás.

        Args:
            reading: SensorReading o diccionario camelCase

        Raises:
            SchemaViolationError: Solo si la lectura está mal formada
        """
        reading = validate_record(SensorReading, reading)
        try:
            summary = await self.registry.get(self.SUMMARY_FLOW).assess(reading)
            risk = await self.registry.get(self.RISK_FLOW).assess(reading)
            result = DeviceAssessment(reading=reading, summary=summary, risk=risk)
        except Exception as e:
            logger.error(f"❌ Error assessing {reading.device_id}: {e}")
            self._fallback_count += 1
            result = DeviceAssessment(
                reading=reading,
                summary=FALLBACK_SUMMARY,
                risk=FALLBACK_RISK,
                fallback=True,
                error=str(e),
            )

        self._processed_count += 1
        self._status_counts[result.risk.status.value] += 1
        if result.risk.requires_alert:
            logger.info(f"🔔 {result}")
        return result

    async def refresh(
        self,
        readings: Iterable[Any],
        max_concurrency: int = 1,
    ) -> Dict[str, DeviceAssessment]:
        """
        Evalúa todos los dispositivos.

        Args:
            readings: Lecturas de los dispositivos
            max_concurrency: 1 = secuencial (por defecto);
                mayor que 1 limita la evaluación concurrente con un semáforo

        Returns:
            Diccionario deviceId -> DeviceAssessment, en el orden de entrada

        Raises:
            SchemaViolationError: Si una lectura está mal formada o un
                deviceId se repite en el lote
        """
        readings = [validate_record(SensorReading, r) for r in readings]

        seen = set()
        duplicates = []
        for i, reading in enumerate(readings):
            if reading.device_id in seen:
                duplicates.append({"field": f"{i}.deviceId", "message": f"duplicate device '{reading.device_id}'"})
            seen.add(reading.device_id)
        if duplicates:
            raise SchemaViolationError("SensorReading", duplicates)

        if max_concurrency <= 1:
            results: List[DeviceAssessment] = []
            for reading in readings:
                results.append(await self.assess_device(reading))
        else:
            semaphore = asyncio.Semaphore(max_concurrency)

            async def bounded(reading: SensorReading) -> DeviceAssessment:
                async with semaphore:
                    return await self.assess_device(reading)

            results = await asyncio.gather(*(bounded(r) for r in readings))

        return {result.device_id: result for result in results}

    def get_stats(self) -> Dict[str, Any]:
        """Retorna estadísticas del servicio."""
        runtime = datetime.now() - self._start_time
        return {
            "processed_count": self._processed_count,
            "fallback_count": self._fallback_count,
            "fallback_rate": self._fallback_count / self._processed_count if self._processed_count > 0 else 0,
            "status_distribution": self._status_counts.copy(),
            "runtime_seconds": runtime.total_seconds(),
            "flows": self.registry.list_flows(),
        }

    def reset_stats(self) -> None:
        """Reinicia estadísticas."""
        self._processed_count = 0
        self._fallback_count = 0
        self._status_counts = {status.value: 0 for status in FloodStatus}
        self._start_time = datetime.now()
