#!/usr/bin/env python3
"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                      🗺️ Flood-Watch Dashboard API                            ║
║                 Mapa de sensores, alertas y flows de riesgo                  ║
╚══════════════════════════════════════════════════════════════════════════════╝

API FastAPI para:
- Servir el estado del mapa (marcadores, ventana de información, banners)
- Lanzar un ciclo de evaluación de todos los dispositivos
- Ejecutar cualquier flow de Flood Core por nombre

Usage:
    python -m dashboard.api

    o con uvicorn:
    uvicorn dashboard.api:app --reload --port 8002
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from flood_core.config import FloodConfig
from flood_core.errors import CapabilityUnavailableError, FlowNotFoundError, SchemaViolationError
from flood_core.service import FloodMonitorService
from sensors.mock_devices import mock_readings

from .store import DashboardStore


# ═══════════════════════════════════════════════════════════════════════════════
# Configuración de Logging
# ═══════════════════════════════════════════════════════════════════════════════

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s"
)
logger = logging.getLogger("dashboard.api")


# ═══════════════════════════════════════════════════════════════════════════════
# FastAPI App
# ═══════════════════════════════════════════════════════════════════════════════

app = FastAPI(
    title="🌊 Flood-Watch Dashboard API",
    description="Flood sensor map with LLM-based flood risk assessment",
    version="1.0.0",
)

# CORS para desarrollo - permite conexión desde el frontend del mapa
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ═══════════════════════════════════════════════════════════════════════════════
# Pydantic Models
# ═══════════════════════════════════════════════════════════════════════════════

class RefreshResponse(BaseModel):
    """Resultado de un ciclo de evaluación."""
    processed: int
    fallbacks: int
    results: Dict[str, Dict[str, Any]]
    timestamp: str


class HealthResponse(BaseModel):
    """Respuesta del health check."""
    status: str
    backend: str
    timestamp: str
    stats: Dict[str, Any]


# ═══════════════════════════════════════════════════════════════════════════════
# Instancias Globales
# ═══════════════════════════════════════════════════════════════════════════════

settings = FloodConfig.from_env()
service = FloodMonitorService(cfg=settings)
store = DashboardStore(readings=mock_readings(), cfg=settings)


# ═══════════════════════════════════════════════════════════════════════════════
# Manejo de errores
# ═══════════════════════════════════════════════════════════════════════════════

@app.exception_handler(SchemaViolationError)
async def schema_violation_handler(request: Request, exc: SchemaViolationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc), **exc.to_dict()},
    )


@app.exception_handler(FlowNotFoundError)
async def flow_not_found_handler(request: Request, exc: FlowNotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(CapabilityUnavailableError)
async def capability_unavailable_handler(request: Request, exc: CapabilityUnavailableError):
    logger.error(f"❌ {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc), "capability": exc.capability},
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Endpoints - Health & Info
# ═══════════════════════════════════════════════════════════════════════════════

@app.get("/", tags=["Health"])
async def root():
    """Endpoint raíz con información de la API."""
    return {
        "service": "Flood-Watch Dashboard API",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "dashboard": "/api/dashboard/data",
            "refresh": "/api/dashboard/refresh",
            "select": "/api/dashboard/select/{deviceId}",
            "alerts": "/api/dashboard/alerts",
            "flows": "/api/flows",
        }
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Verifica el estado del servicio."""
    return HealthResponse(
        status="healthy",
        backend=settings.llm.backend,
        timestamp=datetime.now().isoformat(),
        stats=service.get_stats(),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Endpoints - Dashboard
# ═══════════════════════════════════════════════════════════════════════════════

@app.get("/api/dashboard/data", tags=["Dashboard"])
async def get_dashboard_data():
    """
    📊 Obtiene datos completos para el Dashboard.

    Retorna:
    - markers: Un marcador por dispositivo, coloreado por estado
    - alerts: Banners vigentes
    - selected: Ventana de información del dispositivo seleccionado
    - map / mapError: Configuración del mapa o aviso de credencial ausente
    """
    return store.get_dashboard_data()


@app.post("/api/dashboard/refresh", response_model=RefreshResponse, tags=["Dashboard"])
async def refresh_dashboard(
    readings: Optional[List[Dict[str, Any]]] = Body(None, description="Lecturas camelCase; por defecto las actuales"),
    concurrency: int = Query(1, ge=1, le=32, description="Dispositivos evaluados en paralelo"),
):
    """
    🔄 Evalúa todos los dispositivos y actualiza el mapa.

    Cada dispositivo se resume y se evalúa por separado; si algo falla se
    marca en gris con la alarma segura sin afectar a los demás.
    """
    source = readings if readings is not None else list(store.state.devices)
    results = await service.refresh(source, max_concurrency=concurrency)
    store.apply_refresh(results)

    fallbacks = sum(1 for r in results.values() if r.fallback)
    logger.info(f"📥 Refreshed {len(results)} devices ({fallbacks} fallbacks)")

    return RefreshResponse(
        processed=len(results),
        fallbacks=fallbacks,
        results={device_id: r.to_dict() for device_id, r in results.items()},
        timestamp=datetime.now().isoformat(),
    )


@app.post("/api/dashboard/select/{device_id}", tags=["Dashboard"])
async def select_device(device_id: str):
    """📍 Selecciona un dispositivo (clic en el marcador)."""
    try:
        store.select(device_id)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Device '{device_id}' not found"
        )
    return store.get_dashboard_data()


@app.delete("/api/dashboard/select", tags=["Dashboard"])
async def clear_selection():
    """Cierra la ventana de información."""
    store.clear_selection()
    return store.get_dashboard_data()


@app.get("/api/dashboard/alerts", tags=["Dashboard"])
async def get_alerts():
    """🔔 Banners de alerta vigentes."""
    alerts = store.get_alerts()
    return {
        "total": len(alerts),
        "alerts": alerts
    }


# ═══════════════════════════════════════════════════════════════════════════════
# Endpoints - Flows
# ═══════════════════════════════════════════════════════════════════════════════

@app.get("/api/flows", tags=["Flows"])
async def list_flows():
    """📦 Lista las flows registradas."""
    flows = service.registry.get_all()
    return {
        "total": len(flows),
        "flows": [
            {
                "name": name,
                "description": flow.description,
                "capability": flow.capability.name,
                "usesWeather": flow.uses_weather,
            }
            for name, flow in flows.items()
        ]
    }


@app.post("/api/flows/{name}", tags=["Flows"])
async def run_flow(name: str, data: Dict[str, Any] = Body(...)):
    """
    ▶️ Ejecuta una flow por nombre con una entrada camelCase.

    Errores: 422 entrada inválida, 404 flow desconocida, 503 capacidad no disponible.
    """
    flow = service.registry.get(name)
    output = await flow.assess(data)
    return output.to_dict()


# ═══════════════════════════════════════════════════════════════════════════════
# Main Entry Point
# ═══════════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import uvicorn

    print("""
╔══════════════════════════════════════════════════════════════════════════════╗
║                      🌊 Flood-Watch Dashboard API                            ║
╚══════════════════════════════════════════════════════════════════════════════╝
    """)

    uvicorn.run(
        "dashboard.api:app",
        host="0.0.0.0",
        port=8002,
        reload=True,
        log_level="info",
    )
