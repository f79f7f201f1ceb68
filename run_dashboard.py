#!/usr/bin/env python3
"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                    🌊 Flood-Watch Dashboard Demo                             ║
║              Sensores simulados → Flows de riesgo → Mapa                     ║
╚══════════════════════════════════════════════════════════════════════════════╝

Evalúa los nodos de demostración, actualiza el estado del Dashboard y
selecciona cada dispositivo para mostrar sus banners de alerta.

Usage:
    python run_dashboard.py
    python run_dashboard.py --backend gemini+rules --concurrency 3
    python run_dashboard.py --surge node_002:70
    python run_dashboard.py --api-url http://localhost:8002
"""

import argparse
import asyncio
import json
import sys

import requests

from dashboard.store import DashboardStore
from flood_core.config import FloodConfig
from flood_core.service import FloodMonitorService
from sensors.mock_devices import MockSensorAgent


def print_results(data: dict) -> None:
    """Muestra marcadores y banners del Dashboard."""
    print("\n📍 MARCADORES:\n")
    for marker in data["markers"]:
        risk = data["risks"].get(marker["deviceId"], {})
        line = f"   [{marker['deviceId']}] {marker['status']:<16} {marker['color']:<7}"
        if "predictedFloodRisk" in risk:
            line += f" riesgo={risk['predictedFloodRisk']:.0%}"
        print(line)
        summary = data["summaries"].get(marker["deviceId"])
        if summary:
            print(f"      └─ {summary['summary']}")

    print("\n🔔 BANNERS:\n")
    if not data["alerts"]:
        print("   (ninguno)")
    for alert in data["alerts"]:
        print(f"   {alert['message']}")

    for defect in data["defects"]:
        print(f"   ⚠️  {defect}")

    if data.get("mapError"):
        print(f"\n🗺️  {data['mapError']}")


async def run_local(args: argparse.Namespace) -> dict:
    """Ejecuta el ciclo completo en proceso."""
    cfg = FloodConfig.from_env()
    if args.backend:
        cfg.llm.backend = args.backend

    agent = MockSensorAgent(noise_cm=args.noise, seed=args.seed)
    for surge in args.surge or []:
        device_id, _, extra = surge.partition(":")
        agent.inject_surge(device_id, float(extra or 0))

    service = FloodMonitorService(cfg=cfg)
    readings = agent.read_all()
    store = DashboardStore(readings=readings, cfg=cfg)

    print(f"📊 Evaluando {len(readings)} dispositivos con backend '{cfg.llm.backend}'...\n")
    print("─" * 80)

    results = await service.refresh(readings, max_concurrency=args.concurrency)
    store.apply_refresh(results)

    for result in results.values():
        print(f"\n📥 {result.reading}")
        print(f"   └─ {result.risk}")
        if result.risk.alert_message:
            print(f"   └─ ⚠️  {result.risk.alert_message}")
        if result.fallback:
            print(f"   └─ ❌ {result.error}")

    # Simula el clic en cada marcador
    for reading in readings:
        store.select(reading.device_id)

    print("\n" + "─" * 80)
    data = store.get_dashboard_data()
    print_results(data)

    stats = service.get_stats()
    print(f"\n   📊 Procesados: {stats['processed_count']} | Fallbacks: {stats['fallback_count']}")
    return data


def run_remote(args: argparse.Namespace) -> dict:
    """Usa una instancia de dashboard.api en ejecución."""
    base = args.api_url.rstrip("/")
    response = requests.post(
        f"{base}/api/dashboard/refresh",
        params={"concurrency": args.concurrency},
        timeout=60,
    )
    response.raise_for_status()
    refresh = response.json()
    print(f"📥 Refrescados {refresh['processed']} dispositivos ({refresh['fallbacks']} fallbacks)")

    for device_id in refresh["results"]:
        requests.post(f"{base}/api/dashboard/select/{device_id}", timeout=10).raise_for_status()

    response = requests.get(f"{base}/api/dashboard/data", timeout=10)
    response.raise_for_status()
    data = response.json()
    print_results(data)
    return data


def main() -> int:
    parser = argparse.ArgumentParser(description="Flood-Watch dashboard demo")
    parser.add_argument("--backend", choices=["rules", "gemini", "gemini+rules"],
                        help="Capacidad LLM (por defecto FLOOD_LLM_BACKEND o rules)")
    parser.add_argument("--concurrency", type=int, default=1,
                        help="Dispositivos evaluados en paralelo")
    parser.add_argument("--noise", type=float, default=0.0, help="Ruido del nivel de agua en cm")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--surge", action="append", metavar="DEVICE:CM",
                        help="Inyecta una crecida, p. ej. node_002:70")
    parser.add_argument("--api-url", help="Usa una API remota en lugar del proceso local")
    parser.add_argument("--json", action="store_true", help="Imprime la estructura JSON final")
    args = parser.parse_args()

    print("""
╔══════════════════════════════════════════════════════════════════════════════╗
║                    🌊 Flood-Watch Dashboard Demo                             ║
╚══════════════════════════════════════════════════════════════════════════════╝
    """)

    try:
        if args.api_url:
            data = run_remote(args)
        else:
            data = asyncio.run(run_local(args))
    except requests.RequestException as e:
        print(f"❌ No se pudo contactar la API: {e}")
        return 1
    except KeyError as e:
        print(f"❌ Dispositivo desconocido: {e}")
        return 1

    if args.json:
        print("\n📦 ESTRUCTURA JSON FINAL PARA EL DASHBOARD:\n")
        print(json.dumps(data, indent=2, ensure_ascii=False))

    print("\n" + "═" * 80)
    print("✅ Demo completada.")
    print("═" * 80)
    return 0


if __name__ == "__main__":
    sys.exit(main())
