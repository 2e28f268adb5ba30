"""Unit tests for intent definition.

Invalid descriptions must be rejected once, at definition time, and the
compiled intent must not change when the caller's input does.
"""

from __future__ import annotations

import dataclasses
from typing import Any

import pytest

from intent_reliability.core.errors import ConfigurationError
from intent_reliability.core.intent import Intent, IntentConfig, StepConfig, define_intent
from intent_reliability.core.policies import RetryPolicy


async def _ok(_ctx: Any) -> str:
    return "ok"


def test_entry_step_defaults_to_first_step() -> None:
    intent = define_intent({"name": "two", "steps": [{"id": "a", "run": _ok}, {"id": "b", "run": _ok}]})

    assert isinstance(intent, Intent)
    assert intent.entry_step_id == "a"
    assert [s.id for s in intent.steps] == ["a", "b"]


def test_explicit_entry_step_is_kept() -> None:
    intent = define_intent(
        IntentConfig(
            name="two",
            steps=[StepConfig(id="a", run=_ok), StepConfig(id="b", run=_ok)],
            entry_step_id="b",
        )
    )
    assert intent.entry_step_id == "b"


def test_step_policies_are_normalized() -> None:
    intent = define_intent(
        {
            "name": "policies",
            "steps": [
                {
                    "id": "a",
                    "run": _ok,
                    "retry": {"max_attempts": 3},
                    "timeout_ms": 500,
                    "fallback_to": "b",
                },
                {"id": "b", "run": _ok, "retry": RetryPolicy(max_attempts=2)},
            ],
        }
    )

    a, b = intent.steps
    assert a.retry == RetryPolicy(max_attempts=3)
    assert a.timeout_ms == 500
    assert b.retry == RetryPolicy(max_attempts=2)
    assert a.fallback_to == "b"
    assert b.fallback_to is None


@pytest.mark.parametrize(
    "config",
    [
        None,
        "not an intent",
        {"name": "", "steps": [{"id": "a", "run": _ok}]},
        {"name": "no-steps", "steps": []},
        {"name": "steps-not-a-list", "steps": "abc"},
        {"name": "missing-id", "steps": [{"run": _ok}]},
        {"name": "missing-run", "steps": [{"id": "a"}]},
        {"name": "run-not-callable", "steps": [{"id": "a", "run": "nope"}]},
        {"name": "unknown-key", "steps": [{"id": "a", "run": _ok, "retries": 3}]},
        {"name": "dup", "steps": [{"id": "a", "run": _ok}, {"id": "a", "run": _ok}]},
        {"name": "bad-entry", "steps": [{"id": "a", "run": _ok}], "entry_step_id": "zzz"},
        {"name": "bad-fallback", "steps": [{"id": "a", "run": _ok, "fallback_to": "zzz"}]},
        {"name": "self-fallback", "steps": [{"id": "a", "run": _ok, "fallback_to": "a"}]},
        {
            "name": "backward-fallback",
            "steps": [{"id": "a", "run": _ok}, {"id": "b", "run": _ok, "fallback_to": "a"}],
        },
        {"name": "bad-retry", "steps": [{"id": "a", "run": _ok, "retry": {"max_attempts": 0}}]},
        {"name": "bool-retry", "steps": [{"id": "a", "run": _ok, "retry": {"max_attempts": True}}]},
        {"name": "bad-timeout", "steps": [{"id": "a", "run": _ok, "timeout_ms": -5}]},
        {"name": "float-timeout", "steps": [{"id": "a", "run": _ok, "timeout_ms": 1.5}]},
    ],
)
def test_invalid_descriptions_are_rejected(config: Any) -> None:
    with pytest.raises(ConfigurationError):
        define_intent(config)


def test_configuration_error_is_a_value_error() -> None:
    with pytest.raises(ValueError, match="duplicate step id"):
        define_intent({"name": "dup", "steps": [{"id": "a", "run": _ok}, {"id": "a", "run": _ok}]})


def test_compiled_intent_is_isolated_from_caller_mutation() -> None:
    steps: list[dict[str, Any]] = [{"id": "a", "run": _ok}]
    intent = define_intent({"name": "copy", "steps": steps})

    steps.append({"id": "b", "run": _ok})
    steps[0]["id"] = "changed"

    assert [s.id for s in intent.steps] == ["a"]
    assert isinstance(intent.steps, tuple)


def test_compiled_intent_is_frozen() -> None:
    intent = define_intent({"name": "frozen", "steps": [{"id": "a", "run": _ok}]})

    with pytest.raises(dataclasses.FrozenInstanceError):
        intent.name = "other"  # type: ignore[misc]
    with pytest.raises(dataclasses.FrozenInstanceError):
        intent.steps[0].timeout_ms = 10  # type: ignore[misc]


def test_successor_lookup_follows_declared_order() -> None:
    intent = define_intent(
        {"name": "order", "steps": [{"id": s, "run": _ok} for s in ("a", "b", "c")]}
    )

    assert intent.successor_of("a") == "b"
    assert intent.successor_of("b") == "c"
    assert intent.successor_of("c") is None
    assert intent.successor_of("missing") is None
    assert intent.get_step("b") is intent.steps[1]
    assert intent.get_step("missing") is None


def test_backward_fallback_message_names_the_step() -> None:
    with pytest.raises(ConfigurationError, match='step "b" must fall back to a step declared after it'):
        define_intent(
            {
                "name": "loop",
                "steps": [{"id": "a", "run": _ok}, {"id": "b", "run": _ok, "fallback_to": "a"}],
            }
        )


def test_step_lookups() -> None:
    intent = define_intent(
        {"name": "lookup", "steps": [{"id": s, "run": _ok} for s in ("a", "b", "c")]}
    )

    assert [intent.position_of(s) for s in ("a", "b", "c", "zzz")] == [0, 1, 2, None]
    assert intent.get_step("b") is intent.steps[1]
    assert intent.get_step("zzz") is None
    assert intent.successor_of("a") == "b"
    assert intent.successor_of("c") is None
    assert intent.successor_of("zzz") is None
