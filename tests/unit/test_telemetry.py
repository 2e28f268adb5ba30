"""Unit tests for telemetry events, the per-run emitter and ready-made sinks."""

from __future__ import annotations

import logging
from itertools import count

import pytest

from intent_reliability.core.telemetry import (
    TelemetryEmitter,
    TelemetryEvent,
    TelemetryEventKind,
    TraceRecorder,
    fan_out,
    logging_telemetry_sink,
)


def test_emitter_feeds_trace_and_sink_in_order(recorder: TraceRecorder) -> None:
    emitter = TelemetryEmitter(intent_name="i", sink=recorder)

    emitter.emit(TelemetryEventKind.INTENT_STARTED)
    emitter.emit(TelemetryEventKind.STEP_STARTED, step_id="a")
    emitter.emit(TelemetryEventKind.STEP_FINISHED, step_id="a", success=True)

    assert list(emitter.trace) == recorder.events
    assert recorder.kinds() == ["intent_started", "step_started", "step_finished"]


def test_emitter_without_sink_still_records() -> None:
    emitter = TelemetryEmitter(intent_name="i")

    emitter.emit(TelemetryEventKind.INTENT_STARTED)

    assert len(emitter.trace) == 1


def test_timestamps_never_go_backwards() -> None:
    ticks = iter([5.0, 3.0, 7.0])
    emitter = TelemetryEmitter(intent_name="i", clock=lambda: next(ticks))

    for _ in range(3):
        emitter.emit(TelemetryEventKind.STEP_STARTED, step_id="a")

    assert [e.timestamp for e in emitter.trace] == [5.0, 5.0, 7.0]


def test_events_are_immutable() -> None:
    event = TelemetryEvent(kind=TelemetryEventKind.INTENT_STARTED, timestamp=1.0, intent_name="i")

    with pytest.raises(AttributeError):
        event.intent_name = "other"  # type: ignore[misc]


def test_to_json_omits_absent_fields_and_renders_errors() -> None:
    started = TelemetryEvent(kind=TelemetryEventKind.INTENT_STARTED, timestamp=1.0, intent_name="i")
    failed = TelemetryEvent(
        kind=TelemetryEventKind.RETRY_ATTEMPT_FAILED,
        timestamp=2.0,
        intent_name="i",
        step_id="s",
        attempt=1,
        error=ValueError("bad"),
    )

    assert started.to_json() == {"kind": "intent_started", "timestamp": 1.0, "intent_name": "i"}
    assert failed.to_json() == {
        "kind": "retry_attempt_failed",
        "timestamp": 2.0,
        "intent_name": "i",
        "step_id": "s",
        "attempt": 1,
        "error": {"type": "ValueError", "message": "bad"},
    }


def test_recorder_filters() -> None:
    recorder = TraceRecorder()
    clock = count()
    emitter = TelemetryEmitter(intent_name="i", sink=recorder, clock=lambda: float(next(clock)))
    emitter.emit(TelemetryEventKind.STEP_STARTED, step_id="a")
    emitter.emit(TelemetryEventKind.STEP_STARTED, step_id="b")
    emitter.emit(TelemetryEventKind.STEP_FINISHED, step_id="b", success=True)

    assert [e.step_id for e in recorder.of_kind(TelemetryEventKind.STEP_STARTED)] == ["a", "b"]
    assert [e.kind.value for e in recorder.for_step("b")] == ["step_started", "step_finished"]

    recorder.clear()
    assert recorder.events == []


def test_fan_out_calls_every_sink() -> None:
    first, second = TraceRecorder(), TraceRecorder()
    sink = fan_out(first, None, second)
    emitter = TelemetryEmitter(intent_name="i", sink=sink)

    emitter.emit(TelemetryEventKind.INTENT_STARTED)

    assert first.events == second.events == list(emitter.trace)


def test_logging_sink_logs_structured_event(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="intent_reliability.telemetry")
    emitter = TelemetryEmitter(intent_name="i", sink=logging_telemetry_sink)

    emitter.emit(TelemetryEventKind.STEP_STARTED, step_id="a")
    emitter.emit(TelemetryEventKind.TIMEOUT_FIRED, step_id="a")

    assert [r.levelno for r in caplog.records] == [logging.INFO, logging.WARNING]
    record = caplog.records[0]
    assert record.getMessage() == "telemetry step_started"
    assert record.telemetry["step_id"] == "a"  # type: ignore[attr-defined]
