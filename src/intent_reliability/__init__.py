"""Intent Reliability.

Run short, named workflows ("intents") of ordered async steps with per-step
retry, timeout and single-hop fallback, and get back a complete telemetry trace
of every run.
"""

__version__ = "0.1.0"

from intent_reliability.core import (
    ConfigurationError,
    DanglingReferenceError,
    ExecutionContext,
    ExecutionResult,
    Intent,
    IntentConfig,
    RetryExhaustedError,
    RetryPolicy,
    StepConfig,
    StepTimeoutError,
    TelemetryEvent,
    TelemetryEventKind,
    TelemetrySink,
    TraceRecorder,
    define_intent,
    logging_telemetry_sink,
    run_intent,
)
from intent_reliability.core.config import ReliabilityConfig

__all__ = [
    "__version__",
    "ConfigurationError",
    "DanglingReferenceError",
    "ExecutionContext",
    "ExecutionResult",
    "Intent",
    "IntentConfig",
    "ReliabilityConfig",
    "RetryExhaustedError",
    "RetryPolicy",
    "StepConfig",
    "StepTimeoutError",
    "TelemetryEvent",
    "TelemetryEventKind",
    "TelemetrySink",
    "TraceRecorder",
    "define_intent",
    "logging_telemetry_sink",
    "run_intent",
]
