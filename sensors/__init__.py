"""Sensores simulados de Flood-Watch."""

from .mock_devices import MOCK_DEVICES, MockDevice, MockSensorAgent, mock_readings

__all__ = ["MOCK_DEVICES", "MockDevice", "MockSensorAgent", "mock_readings"]
