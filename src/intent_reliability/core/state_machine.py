"""Explicit lifecycle of a single intent run.

The engine moves a :class:`RunTracker` through these states; an unexpected
transition is a programming error and fails loudly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STEP_SUCCEEDED = "step_succeeded"
    STEP_FAILED = "step_failed"
    ADVANCING = "advancing"
    FALLBACK_RUNNING = "fallback_running"
    INTENT_SUCCEEDED = "intent_succeeded"
    INTENT_FAILED = "intent_failed"


TERMINAL_STATES: frozenset[RunState] = frozenset(
    {RunState.INTENT_SUCCEEDED, RunState.INTENT_FAILED}
)

ALLOWED_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.NOT_STARTED: {RunState.RUNNING, RunState.INTENT_FAILED},
    RunState.RUNNING: {RunState.STEP_SUCCEEDED, RunState.STEP_FAILED},
    RunState.STEP_SUCCEEDED: {RunState.ADVANCING, RunState.INTENT_SUCCEEDED},
    RunState.STEP_FAILED: {RunState.FALLBACK_RUNNING, RunState.INTENT_FAILED},
    RunState.ADVANCING: {RunState.RUNNING, RunState.INTENT_FAILED},
    RunState.FALLBACK_RUNNING: {RunState.STEP_SUCCEEDED, RunState.STEP_FAILED},
    RunState.INTENT_SUCCEEDED: set(),
    RunState.INTENT_FAILED: set(),
}


class IllegalTransitionError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class RunSnapshot:
    state: RunState
    step_id: str | None = None

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {"state": self.state.value}
        if self.step_id is not None:
            out["step_id"] = self.step_id
        return out


def transition(*, current: RunSnapshot, to: RunState, step_id: str | None = None) -> RunSnapshot:
    allowed = ALLOWED_TRANSITIONS.get(current.state, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.state.value} -> {to.value}")
    return RunSnapshot(state=to, step_id=step_id if step_id is not None else current.step_id)


class RunTracker:
    """Holds the current snapshot of one run and records the path taken."""

    def __init__(self, intent_name: str) -> None:
        self.intent_name = intent_name
        self.snapshot = RunSnapshot(state=RunState.NOT_STARTED)
        self.history: list[RunSnapshot] = [self.snapshot]

    @property
    def state(self) -> RunState:
        return self.snapshot.state

    @property
    def finished(self) -> bool:
        return self.snapshot.state in TERMINAL_STATES

    def move(self, to: RunState, step_id: str | None = None) -> RunSnapshot:
        self.snapshot = transition(current=self.snapshot, to=to, step_id=step_id)
        self.history.append(self.snapshot)
        logger.debug(
            "Run transition",
            extra={"intent": self.intent_name, **self.snapshot.to_json()},
        )
        return self.snapshot
