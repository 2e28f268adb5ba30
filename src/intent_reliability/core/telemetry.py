"""Telemetry events emitted while an intent runs.

Every run owns one :class:`TelemetryEmitter`. The emitter appends each event to
the run's trace and then hands it to the caller's sink, so the returned trace
and what the sink observed are always the same sequence.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger("intent_reliability.telemetry")


class TelemetryEventKind(str, Enum):
    INTENT_STARTED = "intent_started"
    STEP_STARTED = "step_started"
    RETRY_ATTEMPT_STARTED = "retry_attempt_started"
    RETRY_ATTEMPT_FAILED = "retry_attempt_failed"
    TIMEOUT_STARTED = "timeout_started"
    TIMEOUT_FIRED = "timeout_fired"
    TIMEOUT_CLEARED = "timeout_cleared"
    STEP_FINISHED = "step_finished"
    INTENT_FINISHED = "intent_finished"


def error_to_json(error: BaseException | None) -> dict[str, str] | None:
    if error is None:
        return None
    return {"type": type(error).__name__, "message": str(error)}


@dataclass(frozen=True, slots=True)
class TelemetryEvent:
    """A single, immutable observation of a run.

    ``timestamp`` comes from :func:`time.monotonic` and is only comparable
    within one process.
    """

    kind: TelemetryEventKind
    timestamp: float
    intent_name: str
    step_id: str | None = None
    attempt: int | None = None
    success: bool | None = None
    error: BaseException | None = None

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "kind": self.kind.value,
            "timestamp": self.timestamp,
            "intent_name": self.intent_name,
        }
        if self.step_id is not None:
            out["step_id"] = self.step_id
        if self.attempt is not None:
            out["attempt"] = self.attempt
        if self.success is not None:
            out["success"] = self.success
        if self.error is not None:
            out["error"] = error_to_json(self.error)
        return out


TelemetrySink = Callable[[TelemetryEvent], None]


@dataclass(slots=True)
class TelemetryEmitter:
    """Per-run event channel: accumulates the trace and forwards to a sink.

    A sink that raises is logged and skipped for that event. The trace and the
    run are unaffected.
    """

    intent_name: str
    sink: TelemetrySink | None = None
    clock: Callable[[], float] = time.monotonic
    _trace: list[TelemetryEvent] = field(default_factory=list, init=False, repr=False)
    _last_timestamp: float = field(default=float("-inf"), init=False, repr=False)

    def emit(
        self,
        kind: TelemetryEventKind,
        *,
        step_id: str | None = None,
        attempt: int | None = None,
        success: bool | None = None,
        error: BaseException | None = None,
    ) -> TelemetryEvent:
        # Clamp so timestamps never go backwards within a run even with a custom clock.
        timestamp = max(self.clock(), self._last_timestamp)
        self._last_timestamp = timestamp
        event = TelemetryEvent(
            kind=kind,
            timestamp=timestamp,
            intent_name=self.intent_name,
            step_id=step_id,
            attempt=attempt,
            success=success,
            error=error,
        )
        self._trace.append(event)
        if self.sink is not None:
            # A sink only observes; its failures never reach the engine.
            try:
                self.sink(event)
            except Exception:
                logger.exception(
                    "Telemetry sink failed (continuing)",
                    extra={"intent": self.intent_name, "kind": kind.value, "step_id": step_id},
                )
        return event

    @property
    def trace(self) -> tuple[TelemetryEvent, ...]:
        return tuple(self._trace)


def logging_telemetry_sink(event: TelemetryEvent) -> None:
    """Forward events to the ``intent_reliability.telemetry`` logger."""

    level = logging.INFO
    if event.error is not None or event.kind is TelemetryEventKind.TIMEOUT_FIRED:
        level = logging.WARNING
    logger.log(
        level,
        "telemetry %s",
        event.kind.value,
        extra={"telemetry": event.to_json()},
    )


class TraceRecorder:
    """A sink that keeps every event it receives.

    Handy in tests and for callers that share one sink across runs.
    """

    def __init__(self) -> None:
        self.events: list[TelemetryEvent] = []

    def __call__(self, event: TelemetryEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [e.kind.value for e in self.events]

    def of_kind(self, kind: TelemetryEventKind) -> list[TelemetryEvent]:
        return [e for e in self.events if e.kind is kind]

    def for_step(self, step_id: str) -> list[TelemetryEvent]:
        return [e for e in self.events if e.step_id == step_id]

    def clear(self) -> None:
        self.events.clear()


def fan_out(*sinks: TelemetrySink | None) -> TelemetrySink:
    """Compose several sinks into one, called in the given order."""

    targets: Iterable[TelemetrySink] = tuple(s for s in sinks if s is not None)

    def _sink(event: TelemetryEvent) -> None:
        for target in targets:
            target(event)

    return _sink
