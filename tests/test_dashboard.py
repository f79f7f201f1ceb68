#!/usr/bin/env python3
"""Tests del Dashboard: transiciones de estado, store y API."""

import asyncio
from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from dashboard import api
from dashboard.models import (
    ClockTick,
    RefreshCompleted,
    SelectionCleared,
    SensorSelected,
)
from dashboard.state import build_markers, info_window, initial_state, reduce
from dashboard.store import MAP_ERROR_MESSAGE, DashboardStore
from flood_core.capabilities import CapabilityRequest, LLMCapability
from flood_core.config import FloodConfig
from flood_core.errors import CapabilityUnavailableError
from flood_core.models import FloodStatus, RiskAssessment, SensorSummary
from flood_core.registry import FlowRegistry
from flood_core.service import DeviceAssessment, FloodMonitorService
from flood_core.weather import StaticWeatherProvider
from sensors.mock_devices import MockSensorAgent, mock_readings


T0 = 1_000_000


class HighWaterCapability(LLMCapability):
    """node_003 en Warning con 'High water level'; el resto Normal."""

    @property
    def name(self) -> str:
        return "high-water"

    async def generate(self, request: CapabilityRequest) -> Optional[Dict[str, Any]]:
        device_id = request.context.get("deviceId")
        if request.flow == "summarizeSensorData":
            return {"summary": f"{device_id} summary", "status": request.context["floodRiskStatus"]}
        if device_id == "node_003":
            return {"status": "Warning", "predictedFloodRisk": 0.7, "alertMessage": "High water level"}
        return {"status": "Normal", "predictedFloodRisk": 0.1}


class DownCapability(LLMCapability):
    @property
    def name(self) -> str:
        return "down"

    async def generate(self, request: CapabilityRequest) -> Optional[Dict[str, Any]]:
        raise CapabilityUnavailableError("llm", "service down")


class FakeClock:
    """Reloj simulado en milisegundos."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now


def assessment(device_id: str, status: str, message: Optional[str] = None) -> DeviceAssessment:
    reading = next(r for r in mock_readings() if r.device_id == device_id)
    return DeviceAssessment(
        reading=reading,
        summary=SensorSummary(summary="ok", status=FloodStatus.NORMAL),
        risk=RiskAssessment(status=FloodStatus(status), predicted_flood_risk=0.5, alert_message=message),
    )


def refreshed(*results: DeviceAssessment, at_ms: int = T0):
    state = initial_state(mock_readings())
    return reduce(state, RefreshCompleted(results={r.device_id: r for r in results}, at_ms=at_ms))


class TestReducer:
    """Tests de las transiciones puras."""

    def test_initial_markers_are_green(self):
        markers = build_markers(initial_state(mock_readings()))

        assert [m.device_id for m in markers] == ["node_001", "node_002", "node_003"]
        assert all(m.color == "green" for m in markers)

    def test_refresh_colors_markers(self):
        state = refreshed(
            assessment("node_001", "Watch", "Rising"),
            assessment("node_002", "Error", "Error assessing flood risk"),
            assessment("node_003", "Predicted_Flood", "Evacuate"),
        )

        colors = {m.device_id: m.color for m in build_markers(state)}
        assert colors == {"node_001": "yellow", "node_002": "gray", "node_003": "red"}
        assert state.alerts == ()  # Sin selección no hay banners

    def test_select_adds_banner(self):
        state = refreshed(assessment("node_003", "Warning", "High water level"))

        state = reduce(state, SensorSelected("node_003", at_ms=T0))

        assert [a.message for a in state.alerts] == ["[node_003]: High water level"]
        assert state.alerts[0].expires_at_ms == T0 + 5000

    def test_select_normal_no_banner(self):
        state = refreshed(assessment("node_002", "Normal"))

        state = reduce(state, SensorSelected("node_002", at_ms=T0))

        assert state.alerts == ()
        assert state.defects == ()

    def test_missing_alert_message_is_defect(self):
        state = refreshed(assessment("node_001", "Watch"))

        state = reduce(state, SensorSelected("node_001", at_ms=T0))

        assert state.alerts == ()
        assert len(state.defects) == 1
        assert "node_001" in state.defects[0]

    def test_repeated_selection_records_defect_once(self):
        """Seleccionar de nuevo el mismo dispositivo defectuoso no acumula defectos."""
        state = refreshed(assessment("node_001", "Watch"))

        for offset in range(3):
            state = reduce(state, SensorSelected("node_001", at_ms=T0 + offset))
            state = reduce(state, SelectionCleared())

        assert len(state.defects) == 1

    def test_refresh_while_selected_adds_banner(self):
        state = refreshed(assessment("node_003", "Normal"))
        state = reduce(state, SensorSelected("node_003", at_ms=T0))
        assert state.alerts == ()

        state = reduce(state, RefreshCompleted(
            results={"node_003": assessment("node_003", "Warning", "High water level")},
            at_ms=T0 + 100,
        ))

        assert [a.message for a in state.alerts] == ["[node_003]: High water level"]

    def test_expiry_removes_only_expired(self):
        """Expirar una alerta no afecta a las demás."""
        state = refreshed(
            assessment("node_001", "Watch", "Rising"),
            assessment("node_003", "Warning", "High water level"),
        )
        state = reduce(state, SensorSelected("node_001", at_ms=T0))
        state = reduce(state, SensorSelected("node_003", at_ms=T0 + 1000))

        state = reduce(state, ClockTick(at_ms=T0 + 5000))

        assert [a.message for a in state.alerts] == ["[node_003]: High water level"]

    def test_duplicate_texts_expire_independently(self):
        state = refreshed(assessment("node_003", "Warning", "High water level"))
        state = reduce(state, SensorSelected("node_003", at_ms=T0))
        state = reduce(state, SensorSelected("node_003", at_ms=T0 + 2000))

        state = reduce(state, ClockTick(at_ms=T0 + 5000))

        assert len(state.alerts) == 1
        assert state.alerts[0].created_at_ms == T0 + 2000

    def test_reduce_does_not_mutate(self):
        before = refreshed(assessment("node_003", "Warning", "High water level"))

        after = reduce(before, SensorSelected("node_003", at_ms=T0))

        assert before.selected_device_id is None
        assert before.alerts == ()
        assert after is not before

    def test_select_unknown_device(self):
        with pytest.raises(KeyError):
            reduce(initial_state(mock_readings()), SensorSelected("node_999", at_ms=T0))

    def test_info_window(self):
        state = refreshed(assessment("node_003", "Warning", "High water level"))
        assert info_window(state) is None

        state = reduce(state, SensorSelected("node_003", at_ms=T0))
        window = info_window(state)

        assert window["deviceId"] == "node_003"
        assert window["rain"] == "Yes"
        assert window["badge"] == "Warning"

        state = reduce(state, SelectionCleared())
        assert info_window(state) is None


class TestDashboardStore:
    """Tests del store con reloj simulado."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return DashboardStore(readings=mock_readings(), clock=clock, cfg=FloodConfig())

    def test_node_003_end_to_end(self, store, clock):
        """node_003 en Warning: marcador naranja y banner durante 5 s."""
        registry = FlowRegistry.with_defaults(HighWaterCapability(), StaticWeatherProvider())
        service = FloodMonitorService(registry=registry, cfg=FloodConfig())

        store.apply_refresh(asyncio.run(service.refresh(store.state.devices)))
        store.select("node_003")
        data = store.get_dashboard_data()

        marker = next(m for m in data["markers"] if m["deviceId"] == "node_003")
        assert marker["color"] == "orange"
        assert [a["message"] for a in data["alerts"]] == ["[node_003]: High water level"]

        clock.now = T0 + 4999
        assert len(store.get_alerts()) == 1

        clock.now = T0 + 5000
        assert store.get_alerts() == []

    def test_subscribers_notified(self, store):
        seen = []
        store.add_subscriber(seen.append)

        store.apply_refresh({"node_003": assessment("node_003", "Warning", "High water level")})
        store.select("node_003")

        assert len(seen) == 2
        assert seen[-1].selected_device_id == "node_003"

    def test_map_error_without_key(self, store):
        assert store.get_dashboard_data()["mapError"] == MAP_ERROR_MESSAGE

    def test_map_key_configured(self, clock):
        cfg = FloodConfig()
        cfg.dashboard.maps_api_key = "maps-key"
        store = DashboardStore(readings=mock_readings(), clock=clock, cfg=cfg)

        data = store.get_dashboard_data()

        assert data["mapError"] is None
        assert data["map"]["apiKey"] == "maps-key"

    def test_ttl_from_config(self, clock):
        cfg = FloodConfig()
        cfg.dashboard.alert_ttl_seconds = 2
        store = DashboardStore(readings=mock_readings(), clock=clock, cfg=cfg)
        store.apply_refresh({"node_003": assessment("node_003", "Warning", "High water level")})
        store.select("node_003")

        clock.now = T0 + 2000

        assert store.get_alerts() == []


class TestMockSensors:
    def test_surge(self):
        agent = MockSensorAgent()
        agent.inject_surge("node_002", extra_cm=70)

        levels = {r.device_id: r.water_level_cm for r in agent.read_all()}

        assert levels["node_002"] == 100
        assert levels["node_001"] == 65

    def test_surge_unknown_device(self):
        with pytest.raises(KeyError):
            MockSensorAgent().inject_surge("node_999", extra_cm=10)


class TestDashboardAPI:
    """Tests de la API HTTP."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def client(self, monkeypatch, clock):
        cfg = FloodConfig()
        monkeypatch.setattr(api, "service", FloodMonitorService(cfg=cfg))
        monkeypatch.setattr(api, "store", DashboardStore(readings=mock_readings(), clock=clock, cfg=cfg))
        return TestClient(api.app)

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_refresh_and_select(self, client):
        response = client.post("/api/dashboard/refresh")
        assert response.status_code == 200
        assert response.json()["processed"] == 3

        response = client.post("/api/dashboard/select/node_003")
        assert response.status_code == 200
        data = response.json()

        assert data["selected"]["deviceId"] == "node_003"
        assert data["alerts"][0]["message"] == "[node_003]: Warning: water level at 90 cm with 0 mm of rainfall"
        assert data["mapError"] == MAP_ERROR_MESSAGE

        response = client.delete("/api/dashboard/select")
        assert response.json()["selected"] is None
        assert client.get("/api/dashboard/alerts").json()["total"] == 1

    def test_select_unknown_device(self, client):
        assert client.post("/api/dashboard/select/node_999").status_code == 404

    def test_refresh_malformed_reading(self, client):
        response = client.post("/api/dashboard/refresh", json=[{"deviceId": "x", "waterLevelCm": -1}])

        assert response.status_code == 422
        assert response.json()["errors"]

    def test_refresh_duplicate_device_rejected(self, client):
        body = [r.to_dict() for r in mock_readings()]
        body.append(dict(body[0], waterLevelCm=120))

        response = client.post("/api/dashboard/refresh", json=body)

        assert response.status_code == 422
        assert "node_001" in response.json()["errors"][0]["message"]
        colors = {m["color"] for m in client.get("/api/dashboard/data").json()["markers"]}
        assert colors == {"green"}

    def test_refresh_with_capability_down(self, client, monkeypatch):
        registry = FlowRegistry.with_defaults(DownCapability())
        monkeypatch.setattr(api, "service", FloodMonitorService(registry=registry, cfg=FloodConfig()))

        response = client.post("/api/dashboard/refresh")

        assert response.status_code == 200
        assert response.json()["fallbacks"] == 3
        markers = client.get("/api/dashboard/data").json()["markers"]
        assert {m["color"] for m in markers} == {"gray"}

    def test_list_flows(self, client):
        names = [f["name"] for f in client.get("/api/flows").json()["flows"]]

        assert "summarizeSensorData" in names
        assert len(names) == 5

    def test_run_flow(self, client):
        body = mock_readings()[2].to_dict()

        response = client.post("/api/flows/floodRiskAssessment", json=body)

        assert response.status_code == 200
        assert response.json()["status"] == "Warning"
        assert "reasoning" in response.json()

    def test_run_flow_invalid_input(self, client):
        body = dict(mock_readings()[0].to_dict(), humidityPercent=150)

        response = client.post("/api/flows/assessFloodRisk", json=body)

        assert response.status_code == 422
        assert any("humidity" in e["field"] for e in response.json()["errors"])

    def test_run_unknown_flow(self, client):
        assert client.post("/api/flows/predictTides", json={}).status_code == 404

    def test_run_flow_capability_down(self, client, monkeypatch):
        registry = FlowRegistry.with_defaults(DownCapability())
        monkeypatch.setattr(api, "service", FloodMonitorService(registry=registry, cfg=FloodConfig()))

        response = client.post("/api/flows/assessFloodRisk", json=mock_readings()[0].to_dict())

        assert response.status_code == 503


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
