"""Core package: intent definition, policies, telemetry and the engine."""

from intent_reliability.core.context import ExecutionContext
from intent_reliability.core.engine import ExecutionResult, run_intent
from intent_reliability.core.errors import (
    ConfigurationError,
    DanglingReferenceError,
    ProviderNotFoundError,
    ReliabilityError,
    RetryExhaustedError,
    StepTimeoutError,
)
from intent_reliability.core.intent import Intent, IntentConfig, StepConfig, define_intent
from intent_reliability.core.policies import RetryPolicy, run_with_retry, run_with_timeout
from intent_reliability.core.telemetry import (
    TelemetryEmitter,
    TelemetryEvent,
    TelemetryEventKind,
    TelemetrySink,
    TraceRecorder,
    fan_out,
    logging_telemetry_sink,
)

__all__ = [
    "ConfigurationError",
    "DanglingReferenceError",
    "ExecutionContext",
    "ExecutionResult",
    "Intent",
    "IntentConfig",
    "ProviderNotFoundError",
    "ReliabilityError",
    "RetryExhaustedError",
    "RetryPolicy",
    "StepConfig",
    "StepTimeoutError",
    "TelemetryEmitter",
    "TelemetryEvent",
    "TelemetryEventKind",
    "TelemetrySink",
    "TraceRecorder",
    "define_intent",
    "fan_out",
    "logging_telemetry_sink",
    "run_intent",
    "run_with_retry",
    "run_with_timeout",
]
