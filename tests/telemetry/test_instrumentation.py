"""Telemetry instrumentation unit tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from battleship_core.engine.direction import Coordinate
from battleship_core.engine.instrumented_game import InstrumentedGame
from battleship_core.engine.settings import GameSettings
from battleship_core.errors import AlreadyCheckedError, OverlapError
from battleship_core.telemetry import config as telemetry_config_module
from battleship_core.telemetry import logger as logger_module
from battleship_core.telemetry import metrics as metrics_module
from battleship_core.telemetry import tracer as tracer_module
from battleship_core.telemetry.config import TelemetryConfig


class DummySpan:
    def __init__(self, names: list[str], span_name: str) -> None:
        self._names = names
        self._names.append(span_name)
        self.exceptions: list[BaseException] = []
        self.closed = False
        self.exit_exception: BaseException | None = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.closed = True
        self.exit_exception = exc_val
        return False

    def set_attribute(self, *_):
        pass

    def record_exception(self, exc: BaseException) -> None:
        self.exceptions.append(exc)


class DummyTracer:
    def __init__(self) -> None:
        self.span_names: list[str] = []
        self.spans: dict[str, DummySpan] = {}

    def start_as_current_span(self, name: str):
        span = DummySpan(self.span_names, name)
        self.spans[name] = span
        return span


def reset_singletons() -> None:
    tracer_module._TRACERS.clear()
    tracer_module._TRACER_PROVIDER = None
    metrics_module._METERS.clear()
    metrics_module._METER_PROVIDER = None
    metrics_module._INSTRUMENTS = {}
    logger_module._LOGGERS.clear()


def test_lazy_init_tracer_and_meter(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    assert tracer_module.get_tracer() is tracer_module.get_tracer()

    provider_instance = MagicMock()
    monkeypatch.setattr(tracer_module, "TracerProvider", MagicMock(return_value=provider_instance))
    monkeypatch.setattr(tracer_module, "OTLPSpanExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(tracer_module.trace, "set_tracer_provider", MagicMock())
    tracer_module.init_tracing(
        TelemetryConfig(enable_tracing=True, otlp_traces_endpoint="http://example")
    )
    assert tracer_module._TRACER_PROVIDER is provider_instance
    assert tracer_module.get_tracer("scope") is provider_instance.get_tracer.return_value

    meter_provider = MagicMock()
    meter_provider.get_meter.return_value = MagicMock()
    monkeypatch.setattr(metrics_module, "MeterProvider", MagicMock(return_value=meter_provider))
    monkeypatch.setattr(metrics_module, "OTLPMetricExporter", MagicMock(return_value=MagicMock()))
    monkeypatch.setattr(
        metrics_module, "PeriodicExportingMetricReader", MagicMock(return_value=MagicMock())
    )
    monkeypatch.setattr(metrics_module.otel_metrics, "set_meter_provider", MagicMock())
    metrics_module.init_metrics(
        TelemetryConfig(enable_metrics=True, otlp_metrics_endpoint="http://example")
    )
    assert metrics_module.get_meter() is meter_provider.get_meter.return_value
    meter_provider.get_meter.assert_called_with("battleship_core")

    metrics_module.record_game_metric("battleship_core_test_total", 2, {"k": "v"})
    counter = meter_provider.get_meter.return_value.create_counter.return_value
    counter.add.assert_called_once_with(2, attributes={"k": "v"})
    reset_singletons()


def test_get_meter_is_cached_per_scope(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_singletons()
    created: list[str] = []

    def fake_get_meter(name: str) -> MagicMock:
        created.append(name)
        return MagicMock(name=name)

    monkeypatch.setattr(metrics_module.otel_metrics, "get_meter", fake_get_meter)

    player_meter = metrics_module.get_meter("battleship_core.engine.player")
    game_meter = metrics_module.get_meter()
    assert player_meter is not game_meter
    assert metrics_module.get_meter("battleship_core.engine.player") is player_meter
    assert created == ["battleship_core.engine.player", "battleship_core"]

    metrics_module.record_game_metric("battleship_core_test_total", 1)
    game_meter.create_counter.assert_called_once_with("battleship_core_test_total")
    player_meter.create_counter.assert_not_called()
    reset_singletons()


def test_get_logger_is_cached() -> None:
    reset_singletons()
    logger = logger_module.get_logger("battleship_core.test")
    assert logger_module.get_logger("battleship_core.test") is logger


def test_init_telemetry_noop(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(telemetry_config_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(telemetry_config_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(telemetry_config_module, "init_logging", lambda cfg: calls.append("lo"))

    telemetry_config_module.init_telemetry(TelemetryConfig())
    assert calls == []


def test_init_telemetry_respects_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(telemetry_config_module, "init_tracing", lambda cfg: calls.append("tr"))
    monkeypatch.setattr(telemetry_config_module, "init_metrics", lambda cfg: calls.append("me"))
    monkeypatch.setattr(telemetry_config_module, "init_logging", lambda cfg: calls.append("lo"))

    config = TelemetryConfig(enable_tracing=True, enable_logging=True)
    telemetry_config_module.init_telemetry(config)
    assert calls == ["tr", "lo"]


def test_from_env_derives_endpoints(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
        "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
        "OTEL_EXPORTER_OTLP_LOGS_ENDPOINT",
        "BATTLESHIP_ENABLE_LOGGING",
        "OTEL_LOGS_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317/")
    monkeypatch.setenv("OTEL_SERVICE_NAME", "battleship-test")
    monkeypatch.setenv("OTEL_RESOURCE_ATTRIBUTES", "deployment=ci, broken")

    config = TelemetryConfig.from_env()
    assert config.otlp_traces_endpoint == "http://collector:4317/v1/traces"
    assert config.otlp_logs_endpoint == "http://collector:4317/v1/logs"
    assert config.enable_tracing and config.enable_metrics and config.enable_logging
    assert config.service_name == "battleship-test"
    assert config.resource_dict()["deployment"] == "ci"
    assert config.resource_dict()["service.name"] == "battleship-test"


def test_load_telemetry_config_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    telemetry_config_module.load_telemetry_config.cache_clear()
    calls = {"count": 0}

    def fake_from_env(cls, **overrides):
        calls["count"] += 1
        return TelemetryConfig(enable_tracing=True)

    monkeypatch.setattr(
        telemetry_config_module.TelemetryConfig, "from_env", classmethod(fake_from_env)
    )

    first = telemetry_config_module.load_telemetry_config()
    second = telemetry_config_module.load_telemetry_config()
    assert first is second
    assert calls["count"] == 1
    telemetry_config_module.load_telemetry_config.cache_clear()


def test_instrumented_game_emits_spans(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer = DummyTracer()
    metrics_calls: list[tuple[str, float, dict | None]] = []
    logger = MagicMock()

    monkeypatch.setattr("battleship_core.engine.instrumented_game.get_tracer", lambda *_: tracer)
    monkeypatch.setattr("battleship_core.engine.instrumented_game.get_logger", lambda *_: logger)
    monkeypatch.setattr(
        "battleship_core.engine.instrumented_game.record_game_metric",
        lambda name, value, attrs=None: metrics_calls.append((name, value, attrs)),
    )

    game = InstrumentedGame(
        GameSettings(ship_lengths=[2], cpu_players=(False, False)), rng_seed=0
    )
    assert "battleship_core.engine.match" in tracer.span_names

    game.place_ship()
    game.set_placement_ship([Coordinate(3, 3), Coordinate(3, 4)])
    game.place_ship()
    assert tracer.span_names.count("battleship_core.engine.place_ship") == 2
    assert game.is_state_active()

    tracer.span_names.clear()
    game.select_space(Coordinate(3, 3))
    with pytest.raises(AlreadyCheckedError):
        game.select_space(Coordinate(3, 3))
    game.select_space(Coordinate(3, 4))

    assert "battleship_core.engine.select_space" in tracer.span_names
    assert "battleship_core.engine.match_complete" in tracer.span_names
    metric_names = {name for name, _, _ in metrics_calls}
    assert "battleship_core_shots_total" in metric_names
    assert "battleship_core_invalid_selections_total" in metric_names
    assert "battleship_core_game_completed_total" in metric_names
    assert game.winner == 0
    assert tracer.spans["battleship_core.engine.match"].closed


def test_match_span_closed_when_cpu_fleet_cannot_fit(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer = DummyTracer()
    monkeypatch.setattr("battleship_core.engine.instrumented_game.get_tracer", lambda *_: tracer)
    monkeypatch.setattr(
        "battleship_core.engine.instrumented_game.get_logger", lambda *_: MagicMock()
    )

    settings = GameSettings(grid_size=(3, 3), ship_lengths=[3, 3, 3], cpu_players=(True, False))
    with pytest.raises(OverlapError) as excinfo:
        InstrumentedGame(settings, rng_seed=0)

    match_span = tracer.spans["battleship_core.engine.match"]
    assert match_span.closed
    assert match_span.exit_exception is excinfo.value


def test_close_ends_abandoned_match(monkeypatch: pytest.MonkeyPatch) -> None:
    tracer = DummyTracer()
    monkeypatch.setattr("battleship_core.engine.instrumented_game.get_tracer", lambda *_: tracer)
    monkeypatch.setattr(
        "battleship_core.engine.instrumented_game.get_logger", lambda *_: MagicMock()
    )

    game = InstrumentedGame(GameSettings(cpu_players=(True, True)), rng_seed=2)
    match_span = tracer.spans["battleship_core.engine.match"]
    assert not match_span.closed

    game.close()
    game.close()
    assert match_span.closed
    assert match_span.exit_exception is None
