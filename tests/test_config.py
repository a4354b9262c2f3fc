from __future__ import annotations

import pytest

from aisview.config import AisViewConfig
from aisview.exceptions import AisViewConfigError
from aisview.models.viewport import Viewport

_ENV_KEYS = (
    "AISVIEW_URL",
    "AISVIEW_BOUNDS",
    "AISVIEW_CONNECT_TIMEOUT",
    "AISVIEW_RECONNECT_INITIAL_DELAY",
    "AISVIEW_RECONNECT_MAX_DELAY",
    "AISVIEW_RECONNECT_MULTIPLIER",
    "AISVIEW_RECONNECT_MAX_ATTEMPTS",
    "AISVIEW_HEARTBEAT",
    "AISVIEW_MIN_REPORT_INTERVAL",
    "AISVIEW_LOG_PAYLOADS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = AisViewConfig()

    assert config.url == "ws://localhost:8080/ais"
    assert config.initial_viewport == Viewport.from_bounds([[-72, 44], [-68, 38]])
    assert config.heartbeat == 30.0
    assert not config.log_payloads


def test_from_env_reads_variables(monkeypatch) -> None:
    monkeypatch.setenv("AISVIEW_URL", " wss://ais.example.test/stream?token=abc ")
    monkeypatch.setenv("AISVIEW_BOUNDS", "[[-71, 42], [-69, 39]]")
    monkeypatch.setenv("AISVIEW_CONNECT_TIMEOUT", "3.5")
    monkeypatch.setenv("AISVIEW_RECONNECT_MAX_ATTEMPTS", "2")
    monkeypatch.setenv("AISVIEW_HEARTBEAT", "off")
    monkeypatch.setenv("AISVIEW_LOG_PAYLOADS", "yes")

    config = AisViewConfig.from_env()

    assert config.url == "wss://ais.example.test/stream?token=abc"
    assert config.initial_bounds == ((-71.0, 42.0), (-69.0, 39.0))
    assert config.connect_timeout == 3.5
    assert config.reconnect_max_attempts == 2
    assert config.heartbeat is None
    assert config.log_payloads


def test_from_env_accepts_csv_bounds(monkeypatch) -> None:
    monkeypatch.setenv("AISVIEW_BOUNDS", "-74.5,41,-73.5,40.5")

    config = AisViewConfig.from_env()

    assert config.initial_viewport.as_bounds() == ((-74.5, 41.0), (-73.5, 40.5))


def test_overrides_take_precedence(monkeypatch) -> None:
    monkeypatch.setenv("AISVIEW_CONNECT_TIMEOUT", "3.5")
    monkeypatch.setenv("AISVIEW_BOUNDS", "not bounds")

    config = AisViewConfig.from_env(connect_timeout=1.0, initial_bounds=((-71.0, 42.0), (-69.0, 39.0)))

    assert config.connect_timeout == 1.0


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("AISVIEW_BOUNDS", "[[1, 2]]"),
        ("AISVIEW_BOUNDS", "[[-69, 42], [-71, 39]]"),
        ("AISVIEW_CONNECT_TIMEOUT", "soon"),
        ("AISVIEW_RECONNECT_MAX_ATTEMPTS", "many"),
        ("AISVIEW_URL", "http://localhost:8080/ais"),
    ],
)
def test_from_env_rejects_bad_values(monkeypatch, key, value) -> None:
    monkeypatch.setenv(key, value)

    with pytest.raises(AisViewConfigError):
        AisViewConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"connect_timeout": 0},
        {"reconnect_initial_delay": -1},
        {"reconnect_initial_delay": 5, "reconnect_max_delay": 1},
        {"reconnect_multiplier": 0.5},
        {"reconnect_max_attempts": -1},
        {"heartbeat": 0},
        {"min_report_interval": -0.1},
    ],
)
def test_invalid_values_raise(kwargs) -> None:
    with pytest.raises(AisViewConfigError):
        AisViewConfig(**kwargs)


def test_reconnect_delay_is_capped() -> None:
    config = AisViewConfig(reconnect_initial_delay=1.0, reconnect_multiplier=2.0, reconnect_max_delay=5.0)

    assert [config.reconnect_delay(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]
