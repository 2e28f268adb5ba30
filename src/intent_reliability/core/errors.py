"""Error taxonomy for intent definition and execution.

Compile-time problems raise :class:`ConfigurationError` and never reach the
engine. Everything else is raised while a step runs and is caught by the
per-step retry/timeout pipeline.
"""

from __future__ import annotations


class ReliabilityError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(ReliabilityError, ValueError):
    """The intent description is malformed. Raised by ``define_intent`` only."""


class StepTimeoutError(ReliabilityError, TimeoutError):
    """A single attempt of a step exceeded its deadline."""

    def __init__(self, *, intent_name: str | None, step_id: str | None, timeout_ms: int) -> None:
        self.intent_name = intent_name
        self.step_id = step_id
        self.timeout_ms = timeout_ms
        if intent_name and step_id:
            message = f'Step "{step_id}" in intent "{intent_name}" timed out after {timeout_ms}ms'
        else:
            message = f"Operation timed out after {timeout_ms}ms"
        super().__init__(message)


class RetryExhaustedError(ReliabilityError):
    """Every attempt of a multi-attempt retry policy failed.

    The last underlying failure is kept on ``last_error`` and is also chained as
    ``__cause__`` when raised by the retry primitive.
    """

    def __init__(
        self,
        *,
        intent_name: str | None,
        step_id: str | None,
        attempts: int,
        last_error: BaseException,
    ) -> None:
        self.intent_name = intent_name
        self.step_id = step_id
        self.attempts = attempts
        self.last_error = last_error
        if intent_name and step_id:
            message = (
                f'Step "{step_id}" in intent "{intent_name}" failed after {attempts} attempts: '
                f"{last_error}"
            )
        else:
            message = f"Operation failed after {attempts} attempts: {last_error}"
        super().__init__(message)


class DanglingReferenceError(ReliabilityError, LookupError):
    """An entry, fallback or successor step id resolves to no step."""

    def __init__(self, message: str, *, intent_name: str, reference: str | None) -> None:
        self.intent_name = intent_name
        self.reference = reference
        super().__init__(message)


class ProviderNotFoundError(ReliabilityError, LookupError):
    """A step asked the execution context for a provider it does not carry."""
