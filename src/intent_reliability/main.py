"""CLI entrypoint.

``demo`` runs the offline demo intent; ``ask`` runs the "Ask → Rewrite" intent
against OpenAI (needs ``INTENT_RELIABILITY_LLM_OPENAI_API_KEY``).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from intent_reliability import __version__
from intent_reliability.core.config import ReliabilityConfig
from intent_reliability.core.context import ExecutionContext
from intent_reliability.core.engine import ExecutionResult, run_intent
from intent_reliability.core.intent import Intent
from intent_reliability.core.telemetry import logging_telemetry_sink
from intent_reliability.demo import build_ask_intent, build_local_demo_intent
from intent_reliability.llm.factory import LLMFactory

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="intent-reliability",
        description="Run intents with retry, timeout and fallback policies",
    )
    parser.add_argument("--version", action="version", version=f"intent-reliability {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    demo = subparsers.add_parser("demo", help="Run the offline demo intent")
    demo.add_argument("--question", default="why is the sky blue?", help="Question to answer")
    demo.add_argument(
        "--mode",
        choices=["ok", "retry", "timeout", "fallback"],
        default="ok",
        help="Failure to simulate in the first step",
    )
    demo.add_argument("--json", action="store_true", help="Print the full result as JSON")

    ask = subparsers.add_parser("ask", help="Ask OpenAI a question and rewrite the answer")
    ask.add_argument("--question", required=True, help="Question to answer")
    ask.add_argument(
        "--mode",
        choices=["retry", "timeout"],
        default=None,
        help="Failure to simulate in the first step",
    )
    ask.add_argument("--json", action="store_true", help="Print the full result as JSON")

    return parser


def _print_result(result: ExecutionResult, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_json(), indent=2, ensure_ascii=False, default=str))
        return
    for event in result.trace:
        parts = [event.kind.value]
        if event.step_id is not None:
            parts.append(f"step={event.step_id}")
        if event.attempt is not None:
            parts.append(f"attempt={event.attempt}")
        if event.success is not None:
            parts.append(f"success={event.success}")
        if event.error is not None:
            parts.append(f"error={event.error}")
        print("  " + " ".join(parts))
    if result.success:
        print(f"Output: {result.output}")
    else:
        print(f"Failed: {result.error}", file=sys.stderr)


async def _run(
    intent: Intent,
    *,
    question: str,
    mode: str | None,
    providers: dict[str, object],
    config: ReliabilityConfig,
) -> ExecutionResult:
    ctx: ExecutionContext[dict[str, Any]] = ExecutionContext(
        input={"question": question},
        providers=providers,
        metadata={"mode": mode},
        telemetry=logging_telemetry_sink,
    )
    return await run_intent(intent, ctx, cancel_on_timeout=config.cancel_on_timeout)


async def _ask(config: ReliabilityConfig, *, question: str, mode: str | None) -> ExecutionResult:
    provider = LLMFactory.create(config.llm)
    try:
        return await _run(
            build_ask_intent(),
            question=question,
            mode=mode,
            providers={"openai": provider},
            config=config,
        )
    finally:
        await provider.close()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ReliabilityConfig()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    config.setup_logging()

    try:
        if args.command == "demo":
            result = asyncio.run(
                _run(
                    build_local_demo_intent(),
                    question=args.question,
                    mode=args.mode,
                    providers={},
                    config=config,
                )
            )
            _print_result(result, as_json=args.json)
            return 0 if result.success else 1

        if args.command == "ask":
            result = asyncio.run(_ask(config, question=args.question, mode=args.mode))
            _print_result(result, as_json=args.json)
            return 0 if result.success else 1

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except ValueError as e:
        logger.error(str(e))
        print(str(e), file=sys.stderr)
        return 2

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
