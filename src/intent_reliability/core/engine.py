"""Execution engine: runs a compiled intent step by step.

For each step the engine emits ``step_started``, runs the step's work through
retry (outer) and timeout (per attempt), reports ``step_finished`` and picks the
next step. A failed step may hand over to its fallback step once; after a
successful step the run continues with the step declared right after the one
that actually succeeded, which is the fallback when a fallback ran.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any

from .context import ExecutionContext
from .errors import ConfigurationError, DanglingReferenceError
from .intent import Intent, StepConfig
from .policies import run_with_retry, run_with_timeout
from .state_machine import RunState, RunTracker
from .telemetry import TelemetryEmitter, TelemetryEvent, TelemetryEventKind, error_to_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Outcome of one run. The trace holds every event the run emitted."""

    intent_name: str
    success: bool
    trace: tuple[TelemetryEvent, ...]
    output: Any = None
    error: BaseException | None = None

    def to_json(self) -> dict[str, object]:
        return {
            "intent_name": self.intent_name,
            "success": self.success,
            "output": self.output,
            "error": error_to_json(self.error),
            "trace": [event.to_json() for event in self.trace],
        }


@dataclass(frozen=True, slots=True)
class _StepOutcome:
    success: bool
    output: Any = None
    error: BaseException | None = None
    next_step_id: str | None = None


class _IntentRun:
    """State for a single execution of an intent. Never reused."""

    def __init__(
        self,
        intent: Intent,
        ctx: ExecutionContext[Any],
        *,
        cancel_on_timeout: bool,
    ) -> None:
        self.intent = intent
        self.ctx = ctx
        self.cancel_on_timeout = cancel_on_timeout
        self.emitter = TelemetryEmitter(intent_name=intent.name, sink=ctx.telemetry)
        self.tracker = RunTracker(intent.name)

    async def execute(self) -> ExecutionResult:
        intent = self.intent
        self.emitter.emit(TelemetryEventKind.INTENT_STARTED)
        logger.info("Intent started", extra={"intent": intent.name})

        if not intent.steps:
            return self._fail(
                DanglingReferenceError(
                    f'Intent "{intent.name}" has no steps defined.',
                    intent_name=intent.name,
                    reference=None,
                )
            )

        entry_step_id = intent.entry_step_id or intent.steps[0].id
        if intent.get_step(entry_step_id) is None:
            return self._fail(
                DanglingReferenceError(
                    f'entry_step_id "{entry_step_id}" does not match any step id.',
                    intent_name=intent.name,
                    reference=entry_step_id,
                )
            )

        current_step_id = entry_step_id
        while True:
            step = intent.get_step(current_step_id)
            if step is None:
                return self._fail(
                    DanglingReferenceError(
                        f'Intent "{intent.name}" references unknown step "{current_step_id}".',
                        intent_name=intent.name,
                        reference=current_step_id,
                    )
                )

            self.tracker.move(RunState.RUNNING, step.id)
            outcome = await self._run_step_with_fallback(step)
            if not outcome.success:
                assert outcome.error is not None
                return self._fail(outcome.error)

            if outcome.next_step_id is None:
                return self._succeed(outcome.output)

            self.tracker.move(RunState.ADVANCING)
            current_step_id = outcome.next_step_id

    async def _run_step_with_fallback(self, step: StepConfig) -> _StepOutcome:
        self.emitter.emit(TelemetryEventKind.STEP_STARTED, step_id=step.id)
        try:
            output = await self._run_step(step)
        except Exception as exc:
            self.tracker.move(RunState.STEP_FAILED)
            return await self._handle_failure(step, exc)

        return self._step_succeeded(step, output)

    async def _handle_failure(self, step: StepConfig, error: Exception) -> _StepOutcome:
        intent = self.intent

        if step.fallback_to is None:
            self.emitter.emit(
                TelemetryEventKind.STEP_FINISHED, step_id=step.id, success=False, error=error
            )
            logger.warning(
                "Step failed",
                extra={"intent": intent.name, "step_id": step.id, "error": repr(error)},
            )
            return _StepOutcome(success=False, error=error)

        fallback = intent.get_step(step.fallback_to)
        if fallback is None:
            dangling = DanglingReferenceError(
                f'fallback_to "{step.fallback_to}" does not match any step id.',
                intent_name=intent.name,
                reference=step.fallback_to,
            )
            return self._reject_fallback(step, dangling, cause=error)

        fallback_position = intent.position_of(fallback.id)
        step_position = intent.position_of(step.id)
        if (
            fallback_position is None
            or step_position is None
            or fallback_position <= step_position
        ):
            backward = ConfigurationError(
                f'fallback_to "{step.fallback_to}" is not declared after step "{step.id}".'
            )
            return self._reject_fallback(step, backward, cause=error)

        self.emitter.emit(
            TelemetryEventKind.STEP_FINISHED, step_id=step.id, success=False, error=error
        )
        logger.warning(
            "Step failed, running fallback",
            extra={
                "intent": intent.name,
                "step_id": step.id,
                "fallback_to": fallback.id,
                "error": repr(error),
            },
        )

        # One hop only: a failing fallback ends the run even if it declares its own fallback.
        self.tracker.move(RunState.FALLBACK_RUNNING, fallback.id)
        self.emitter.emit(TelemetryEventKind.STEP_STARTED, step_id=fallback.id)
        try:
            output = await self._run_step(fallback)
        except Exception as fallback_error:
            self.tracker.move(RunState.STEP_FAILED)
            self.emitter.emit(
                TelemetryEventKind.STEP_FINISHED,
                step_id=fallback.id,
                success=False,
                error=fallback_error,
            )
            logger.warning(
                "Fallback step failed",
                extra={"intent": intent.name, "step_id": fallback.id, "error": repr(fallback_error)},
            )
            return _StepOutcome(success=False, error=fallback_error)

        return self._step_succeeded(fallback, output)

    def _reject_fallback(
        self, step: StepConfig, rejection: Exception, *, cause: Exception
    ) -> _StepOutcome:
        rejection.__cause__ = cause
        self.emitter.emit(
            TelemetryEventKind.STEP_FINISHED, step_id=step.id, success=False, error=rejection
        )
        logger.warning(
            "Step failed and its fallback cannot run",
            extra={
                "intent": self.intent.name,
                "step_id": step.id,
                "fallback_to": step.fallback_to,
                "error": repr(rejection),
            },
        )
        return _StepOutcome(success=False, error=rejection)

    def _step_succeeded(self, step: StepConfig, output: Any) -> _StepOutcome:
        self.tracker.move(RunState.STEP_SUCCEEDED)
        self.emitter.emit(TelemetryEventKind.STEP_FINISHED, step_id=step.id, success=True)
        return _StepOutcome(
            success=True,
            output=output,
            next_step_id=self.intent.successor_of(step.id),
        )

    async def _run_step(self, step: StepConfig) -> Any:
        ctx = self.ctx

        async def _invoke() -> Any:
            result = step.run(ctx)
            if inspect.isawaitable(result):
                return await result
            return result

        return await run_with_retry(
            lambda: run_with_timeout(
                _invoke,
                step.timeout_ms,
                emitter=self.emitter,
                step_id=step.id,
                cancel_on_timeout=self.cancel_on_timeout,
            ),
            step.retry,
            emitter=self.emitter,
            step_id=step.id,
        )

    def _succeed(self, output: Any) -> ExecutionResult:
        self.tracker.move(RunState.INTENT_SUCCEEDED)
        self.emitter.emit(TelemetryEventKind.INTENT_FINISHED, success=True)
        logger.info("Intent finished", extra={"intent": self.intent.name, "success": True})
        return ExecutionResult(
            intent_name=self.intent.name,
            success=True,
            output=output,
            trace=self.emitter.trace,
        )

    def _fail(self, error: BaseException) -> ExecutionResult:
        self.tracker.move(RunState.INTENT_FAILED)
        self.emitter.emit(TelemetryEventKind.INTENT_FINISHED, success=False, error=error)
        logger.info(
            "Intent finished",
            extra={"intent": self.intent.name, "success": False, "error": repr(error)},
        )
        return ExecutionResult(
            intent_name=self.intent.name,
            success=False,
            error=error,
            trace=self.emitter.trace,
        )


async def run_intent(
    intent: Intent,
    ctx: ExecutionContext[Any],
    *,
    cancel_on_timeout: bool = False,
) -> ExecutionResult:
    """Run ``intent`` once against ``ctx``.

    Step failures never propagate out of this coroutine; they are reported in
    the returned :class:`ExecutionResult` and its trace. Cancelling the calling
    task still cancels the run.

    Each run works on its own scratchpad, seeded with a shallow copy of
    ``ctx.scratchpad``. Steps never see writes from another run, and the
    caller's map is left untouched, so one context can be reused or shared
    between concurrent runs.

    Args:
        intent: A compiled intent from :func:`define_intent`.
        ctx: Input, providers, metadata and sink for this run.
        cancel_on_timeout: Cancel a step's work when its deadline elapses
            instead of abandoning it.

    Returns:
        The run's result, including the full telemetry trace.
    """

    run_ctx = ctx.fork(scratchpad=dict(ctx.scratchpad))
    return await _IntentRun(intent, run_ctx, cancel_on_timeout=cancel_on_timeout).execute()
