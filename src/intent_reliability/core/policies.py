"""Reliability policies wrapped around a single unit of work.

Both primitives take a zero-argument callable returning an awaitable and emit
their own telemetry through the run's :class:`TelemetryEmitter`. They compose
by nesting; the engine puts retry outside so each attempt owns its deadline.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from .errors import RetryExhaustedError, StepTimeoutError
from .telemetry import TelemetryEmitter, TelemetryEventKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

UnitOfWork = Callable[[], Awaitable[T]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How many times a step may be attempted in total (not re-tried)."""

    max_attempts: int = 1


def _emit(
    emitter: TelemetryEmitter | None,
    kind: TelemetryEventKind,
    **fields: object,
) -> None:
    if emitter is not None:
        emitter.emit(kind, **fields)  # type: ignore[arg-type]


async def run_with_retry(
    fn: UnitOfWork[T],
    policy: RetryPolicy | None = None,
    *,
    emitter: TelemetryEmitter | None = None,
    step_id: str | None = None,
) -> T:
    """Run ``fn`` up to ``policy.max_attempts`` times, returning the first success.

    The final attempt never emits ``retry_attempt_failed``; its outcome shows up
    in the enclosing step's ``step_finished`` event instead.

    Raises:
        RetryExhaustedError: All attempts failed and more than one was allowed.
        Exception: The original failure, unchanged, when only one attempt was allowed.
    """

    max_attempts = policy.max_attempts if policy is not None and policy.max_attempts > 0 else 1
    intent_name = emitter.intent_name if emitter is not None else None

    for attempt in range(1, max_attempts + 1):
        _emit(emitter, TelemetryEventKind.RETRY_ATTEMPT_STARTED, step_id=step_id, attempt=attempt)
        try:
            return await fn()
        except Exception as exc:
            if attempt == max_attempts:
                if max_attempts > 1:
                    raise RetryExhaustedError(
                        intent_name=intent_name,
                        step_id=step_id,
                        attempts=max_attempts,
                        last_error=exc,
                    ) from exc
                raise
            logger.debug(
                "Attempt failed, retrying",
                extra={
                    "intent": intent_name,
                    "step_id": step_id,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "error": repr(exc),
                },
            )
            _emit(
                emitter,
                TelemetryEventKind.RETRY_ATTEMPT_FAILED,
                step_id=step_id,
                attempt=attempt,
                error=exc,
            )

    raise AssertionError("retry loop exited without a result")


def _discard_outcome(task: asyncio.Future[object]) -> None:
    # Retrieve the result so asyncio never reports it as unhandled.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned work failed after its deadline", extra={"error": repr(exc)})


async def run_with_timeout(
    fn: UnitOfWork[T],
    timeout_ms: int | None = None,
    *,
    emitter: TelemetryEmitter | None = None,
    step_id: str | None = None,
    cancel_on_timeout: bool = False,
) -> T:
    """Race ``fn`` against a deadline of ``timeout_ms`` milliseconds.

    Without a positive ``timeout_ms`` the work runs as-is and nothing is emitted.

    When the deadline wins, the work is abandoned: it keeps running in the
    background and whatever it eventually produces is discarded. Pass
    ``cancel_on_timeout=True`` to cancel it instead.

    Raises:
        StepTimeoutError: The deadline elapsed before the work settled.
    """

    if timeout_ms is None or timeout_ms <= 0:
        return await fn()

    intent_name = emitter.intent_name if emitter is not None else None
    _emit(emitter, TelemetryEventKind.TIMEOUT_STARTED, step_id=step_id)

    async def _call() -> T:
        return await fn()

    task = asyncio.ensure_future(_call())
    try:
        done, _pending = await asyncio.wait({task}, timeout=timeout_ms / 1000)
    except asyncio.CancelledError:
        # The run itself was cancelled; do not leave the work behind.
        task.cancel()
        raise

    if task not in done:
        _emit(emitter, TelemetryEventKind.TIMEOUT_FIRED, step_id=step_id)
        if cancel_on_timeout:
            task.cancel()
        task.add_done_callback(_discard_outcome)
        logger.debug(
            "Deadline elapsed",
            extra={
                "intent": intent_name,
                "step_id": step_id,
                "timeout_ms": timeout_ms,
                "cancelled": cancel_on_timeout,
            },
        )
        raise StepTimeoutError(intent_name=intent_name, step_id=step_id, timeout_ms=timeout_ms)

    _emit(emitter, TelemetryEventKind.TIMEOUT_CLEARED, step_id=step_id)
    return task.result()
