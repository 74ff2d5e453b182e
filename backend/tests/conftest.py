from __future__ import annotations

import pytest

from adaptive_engine.config import Settings
from adaptive_engine.telemetry import TelemetryEvent, clear_listeners, register_listener


@pytest.fixture(autouse=True)
def _reset_telemetry():
    clear_listeners()
    yield
    clear_listeners()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def telemetry_events() -> list[TelemetryEvent]:
    events: list[TelemetryEvent] = []
    register_listener(events.append)
    return events
