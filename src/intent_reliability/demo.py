"""Ready-made demo intents.

``build_ask_intent`` answers a question with a model provider and rewrites the
answer into five words. ``build_local_demo_intent`` needs no network and shows
retry, timeout and fallback behaviour on demand.

Both read an optional ``mode`` from ``ctx.metadata``:

- ``"retry"``: the first step fails on its first attempt only.
- ``"timeout"``: the first step hangs past its deadline on every attempt.
- ``"fallback"`` (local demo only): the first step always fails.

The "fail once" bookkeeping lives in the run's scratchpad, so concurrent runs
never see each other's state.
"""

from __future__ import annotations

import asyncio
from typing import Any

from intent_reliability.core.context import ExecutionContext
from intent_reliability.core.intent import Intent, StepConfig, define_intent
from intent_reliability.core.policies import RetryPolicy
from intent_reliability.llm.provider import ChatProvider, ChatRequest

ASK_INTENT_NAME = "Ask → Rewrite"
LOCAL_INTENT_NAME = "Local demo"

CANNED_ANSWER = "No live answer was available"


class SyntheticFailure(RuntimeError):
    """Raised on purpose by demo steps."""


def _mode(ctx: ExecutionContext[Any]) -> str:
    mode = ctx.metadata.get("mode")
    return mode if isinstance(mode, str) else "ok"


async def _apply_demo_mode(ctx: ExecutionContext[Any], *, step_id: str, timeout_ms: int) -> None:
    mode = _mode(ctx)
    if mode == "retry":
        key = f"{step_id}.failed_once"
        if not ctx.scratchpad.get(key):
            ctx.scratchpad[key] = True
            raise SyntheticFailure("synthetic failure to demonstrate retry")
    elif mode == "timeout":
        await asyncio.sleep(timeout_ms * 1.2 / 1000)
        # The deadline has fired by now; fail so the abandoned attempt leaves no trace.
        raise SyntheticFailure("synthetic hang to demonstrate timeout")
    elif mode == "fallback":
        raise SyntheticFailure("synthetic failure to demonstrate fallback")


def _question(ctx: ExecutionContext[Any]) -> str:
    value = ctx.input.get("question") if isinstance(ctx.input, dict) else ctx.input
    if not isinstance(value, str) or not value.strip():
        raise ValueError("input must carry a non-empty question")
    return value.strip()


def build_ask_intent(
    *,
    provider_name: str = "openai",
    answer_timeout_ms: int = 10_000,
    rewrite_timeout_ms: int = 8_000,
) -> Intent:
    """Two-step intent: one-sentence answer, then a five-word rewrite.

    Input is ``{"question": str}``. The provider registered as ``provider_name``
    must be a :class:`ChatProvider`.
    """

    async def primary_answer(ctx: ExecutionContext[Any]) -> str:
        question = _question(ctx)
        await _apply_demo_mode(ctx, step_id="primary_answer", timeout_ms=answer_timeout_ms)

        provider = ctx.provider(provider_name, ChatProvider)
        response = await provider.chat(
            ChatRequest(
                prompt="\n".join(
                    [
                        "Answer the question in EXACTLY 1 sentence.",
                        'Do NOT include a preface like "Sure", "Correct", or "Answer:".',
                        "Do NOT add bullet points or extra sentences.",
                        "",
                        f"Question: {question}",
                    ]
                )
            )
        )
        answer = response.content.strip()
        ctx.scratchpad["primary_answer"] = answer
        return answer

    async def rewrite_5_words(ctx: ExecutionContext[Any]) -> str:
        sentence = str(ctx.scratchpad.get("primary_answer", "")).strip()
        provider = ctx.provider(provider_name, ChatProvider)
        response = await provider.chat(
            ChatRequest(
                prompt="\n".join(
                    [
                        "Rewrite the text into EXACTLY 5 words.",
                        "Return ONLY the 5 words.",
                        "No punctuation. No quotes. No extra text.",
                        "",
                        f"Text: {sentence}",
                    ]
                )
            )
        )
        return response.content.strip()

    return define_intent(
        {
            "name": ASK_INTENT_NAME,
            "entry_step_id": "primary_answer",
            "steps": [
                StepConfig(
                    id="primary_answer",
                    run=primary_answer,
                    retry=RetryPolicy(max_attempts=3),
                    timeout_ms=answer_timeout_ms,
                ),
                StepConfig(
                    id="rewrite_5_words",
                    run=rewrite_5_words,
                    retry=RetryPolicy(max_attempts=2),
                    timeout_ms=rewrite_timeout_ms,
                ),
            ],
        }
    )


def build_local_demo_intent(*, answer_timeout_ms: int = 200) -> Intent:
    """Offline intent: ``answer`` → ``canned_answer`` → ``polish``.

    ``canned_answer`` is the fallback for ``answer`` and is declared right after
    it, so the run continues with ``polish`` either way. On the happy path it
    runs too and leaves the live answer in place.
    """

    async def answer(ctx: ExecutionContext[Any]) -> str:
        question = _question(ctx)
        await _apply_demo_mode(ctx, step_id="answer", timeout_ms=answer_timeout_ms)
        text = f"You asked: {question}"
        ctx.scratchpad["answer"] = text
        return text

    async def canned_answer(ctx: ExecutionContext[Any]) -> str:
        return str(ctx.scratchpad.setdefault("answer", CANNED_ANSWER))

    async def polish(ctx: ExecutionContext[Any]) -> str:
        words = str(ctx.scratchpad["answer"]).split()
        return " ".join(words[:5])

    return define_intent(
        {
            "name": LOCAL_INTENT_NAME,
            "steps": [
                {
                    "id": "answer",
                    "run": answer,
                    "retry": {"max_attempts": 2},
                    "timeout_ms": answer_timeout_ms,
                    "fallback_to": "canned_answer",
                },
                {"id": "canned_answer", "run": canned_answer},
                {"id": "polish", "run": polish},
            ],
        }
    )
