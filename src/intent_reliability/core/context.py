"""Execution context handed to every step of a run."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Generic, TypeVar

from .errors import ProviderNotFoundError
from .telemetry import TelemetrySink

InputT = TypeVar("InputT")
P = TypeVar("P")


@dataclass
class ExecutionContext(Generic[InputT]):
    """Inputs and capabilities for one run.

    ``scratchpad`` is the only place steps may leave data for later steps.
    :func:`run_intent` gives every run its own copy, so whatever is here before
    a run acts as a seed; the map itself is never written to.
    """

    input: InputT
    providers: Mapping[str, object] = field(default_factory=dict)
    scratchpad: dict[str, Any] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)
    telemetry: TelemetrySink | None = None

    def provider(self, name: str, kind: type[P]) -> P:
        """Resolve a provider by name and check it offers the ``kind`` capability.

        Raises:
            ProviderNotFoundError: If no provider is registered under ``name`` or it
                does not implement ``kind``.
        """

        try:
            candidate = self.providers[name]
        except KeyError:
            raise ProviderNotFoundError(f'No provider registered as "{name}"') from None
        if not isinstance(candidate, kind):
            raise ProviderNotFoundError(
                f'Provider "{name}" is a {type(candidate).__name__}, not a {kind.__name__}'
            )
        return candidate

    def fork(self, **changes: Any) -> ExecutionContext[Any]:
        """Copy this context for another run, with an empty scratchpad."""

        changes.setdefault("scratchpad", {})
        return replace(self, **changes)
