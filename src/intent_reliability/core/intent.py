"""Define intents: validate a workflow description once and freeze it.

``define_intent`` is the only place where the shape of an intent is checked.
The engine re-checks only the references it follows, so a hand-built
:class:`Intent` fails its run cleanly instead of crashing or looping.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .errors import ConfigurationError
from .policies import RetryPolicy

if TYPE_CHECKING:
    from .context import ExecutionContext

logger = logging.getLogger(__name__)

StepRun = Callable[["ExecutionContext"], Awaitable[Any]]

_STEP_KEYS = frozenset({"id", "run", "retry", "timeout_ms", "fallback_to"})


@dataclass(frozen=True, slots=True)
class StepConfig:
    """One unit of work plus its optional reliability policy."""

    id: str
    run: StepRun
    retry: RetryPolicy | None = None
    timeout_ms: int | None = None
    fallback_to: str | None = None


@dataclass(slots=True)
class IntentConfig:
    """User-facing description of an intent, before validation."""

    name: str
    steps: Sequence[StepConfig | Mapping[str, Any]] = field(default_factory=list)
    entry_step_id: str | None = None


@dataclass(frozen=True, slots=True)
class Intent:
    """A validated, immutable intent, safe to share between concurrent runs.

    Step positions are indexed once at construction; lookups never scan.
    """

    name: str
    steps: tuple[StepConfig, ...]
    entry_step_id: str
    _positions: Mapping[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        positions: dict[str, int] = {}
        for index, step in enumerate(self.steps):
            positions.setdefault(step.id, index)
        object.__setattr__(self, "_positions", MappingProxyType(positions))

    def position_of(self, step_id: str) -> int | None:
        return self._positions.get(step_id)

    def get_step(self, step_id: str) -> StepConfig | None:
        index = self._positions.get(step_id)
        return self.steps[index] if index is not None else None

    def successor_of(self, step_id: str) -> str | None:
        """Id of the step declared right after ``step_id``, if any."""

        index = self._positions.get(step_id)
        if index is None or index + 1 >= len(self.steps):
            return None
        return self.steps[index + 1].id


def _coerce_retry(name: str, step_id: str, raw: object) -> RetryPolicy | None:
    if raw is None:
        return None
    if isinstance(raw, RetryPolicy):
        max_attempts: object = raw.max_attempts
    elif isinstance(raw, Mapping):
        max_attempts = raw.get("max_attempts")
    else:
        raise ConfigurationError(
            f'define_intent("{name}"): step "{step_id}" has an invalid retry policy {raw!r}'
        )
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
        raise ConfigurationError(
            f'define_intent("{name}"): step "{step_id}" retry.max_attempts must be an '
            f"integer >= 1, got {max_attempts!r}"
        )
    return RetryPolicy(max_attempts=max_attempts)


def _coerce_timeout(name: str, step_id: str, raw: object) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
        raise ConfigurationError(
            f'define_intent("{name}"): step "{step_id}" timeout_ms must be a positive '
            f"integer, got {raw!r}"
        )
    return raw


def _coerce_step(name: str, raw: object) -> StepConfig:
    if isinstance(raw, StepConfig):
        values: Mapping[str, Any] = {
            "id": raw.id,
            "run": raw.run,
            "retry": raw.retry,
            "timeout_ms": raw.timeout_ms,
            "fallback_to": raw.fallback_to,
        }
    elif isinstance(raw, Mapping):
        unknown = set(raw) - _STEP_KEYS
        if unknown:
            raise ConfigurationError(
                f'define_intent("{name}"): step has unknown keys {sorted(unknown)!r}'
            )
        values = raw
    else:
        raise ConfigurationError(f'define_intent("{name}"): step must be a mapping, got {raw!r}')

    step_id = values.get("id")
    if not step_id or not isinstance(step_id, str):
        raise ConfigurationError(f'define_intent("{name}"): found a step with no id')

    run = values.get("run")
    if not callable(run):
        raise ConfigurationError(
            f'define_intent("{name}"): step "{step_id}" is missing a valid run() callable'
        )

    fallback_to = values.get("fallback_to")
    if fallback_to is not None and (not isinstance(fallback_to, str) or not fallback_to):
        raise ConfigurationError(
            f'define_intent("{name}"): step "{step_id}" has an invalid fallback_to {fallback_to!r}'
        )

    return StepConfig(
        id=step_id,
        run=run,
        retry=_coerce_retry(name, step_id, values.get("retry")),
        timeout_ms=_coerce_timeout(name, step_id, values.get("timeout_ms")),
        fallback_to=fallback_to,
    )


def define_intent(config: IntentConfig | Intent | Mapping[str, Any]) -> Intent:
    """Validate and freeze an intent description.

    Args:
        config: An :class:`IntentConfig`, an existing :class:`Intent`, or a mapping
            with ``name``, ``steps`` and optionally ``entry_step_id``.

    Returns:
        The compiled :class:`Intent`. Its step tuple is a copy, so later changes
        to the caller's list are not seen.

    Raises:
        ConfigurationError: If the description is malformed, the name or step
            list is empty, a step has no id or run callable, ids repeat, the
            entry step or a fallback target names no step, or a fallback target
            is not declared after its step.
    """

    if isinstance(config, (IntentConfig, Intent)):
        name: object = config.name
        steps: object = config.steps
        entry_step_id: object = config.entry_step_id
    elif isinstance(config, Mapping):
        name = config.get("name")
        steps = config.get("steps")
        entry_step_id = config.get("entry_step_id")
    else:
        raise ConfigurationError("Intent config must be a mapping or IntentConfig")

    if not name or not isinstance(name, str):
        raise ConfigurationError("Intent must have a non-empty name")

    if isinstance(steps, (str, bytes)) or not isinstance(steps, Sequence) or not steps:
        raise ConfigurationError(f'define_intent("{name}"): intent must have at least one step')

    compiled: list[StepConfig] = []
    ids: set[str] = set()
    for raw in steps:
        step = _coerce_step(name, raw)
        if step.id in ids:
            raise ConfigurationError(f'define_intent("{name}"): duplicate step id "{step.id}"')
        ids.add(step.id)
        compiled.append(step)

    if entry_step_id is not None and not isinstance(entry_step_id, str):
        raise ConfigurationError(
            f'define_intent("{name}"): entry_step_id must be a string, got {entry_step_id!r}'
        )
    final_entry = entry_step_id or compiled[0].id
    if final_entry not in ids:
        raise ConfigurationError(
            f'define_intent("{name}"): entry_step_id "{final_entry}" does not match any step id'
        )

    positions = {step.id: index for index, step in enumerate(compiled)}
    for index, step in enumerate(compiled):
        if step.fallback_to is None:
            continue
        if step.fallback_to not in ids:
            raise ConfigurationError(
                f'define_intent("{name}"): step "{step.id}" falls back to unknown step '
                f'"{step.fallback_to}"'
            )
        # A run continues after the fallback's position, so an earlier target would loop.
        if positions[step.fallback_to] <= index:
            raise ConfigurationError(
                f'define_intent("{name}"): step "{step.id}" must fall back to a step declared '
                f'after it, got "{step.fallback_to}"'
            )

    logger.debug(
        "Intent defined",
        extra={"intent": name, "steps": [s.id for s in compiled], "entry_step_id": final_entry},
    )
    return Intent(name=name, steps=tuple(compiled), entry_step_id=final_entry)
