#!/usr/bin/env python3
"""Programmatic usage example.

This demonstrates using the library directly:

* define an intent with retry, timeout and fallback policies
* run it with the logging telemetry sink
* print the resulting trace

No network access or API key is needed.
"""

from __future__ import annotations

import argparse
import asyncio
import random
from typing import Any, Sequence

from intent_reliability import (
    ExecutionContext,
    ReliabilityConfig,
    define_intent,
    logging_telemetry_sink,
    run_intent,
)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a small intent (programmatic example).")
    parser.add_argument("--city", default="Lisbon", help="City to look up")
    parser.add_argument(
        "--failure-rate",
        type=float,
        default=0.5,
        help="Probability that the flaky lookup fails on a given attempt",
    )
    return parser.parse_args(argv)


def build_intent(failure_rate: float):
    async def lookup(ctx: ExecutionContext[Any]) -> str:
        await asyncio.sleep(0.05)
        if random.random() < failure_rate:
            raise ConnectionError("weather service unavailable")
        forecast = f"Sunny in {ctx.input}"
        ctx.scratchpad["forecast"] = forecast
        return forecast

    async def cached(ctx: ExecutionContext[Any]) -> str:
        # Runs after a successful lookup too; only fill in what is missing.
        return ctx.scratchpad.setdefault("forecast", f"Last known forecast for {ctx.input}: cloudy")

    async def announce(ctx: ExecutionContext[Any]) -> str:
        return ctx.scratchpad["forecast"].upper()

    return define_intent(
        {
            "name": "forecast",
            "steps": [
                {
                    "id": "lookup",
                    "run": lookup,
                    "retry": {"max_attempts": 3},
                    "timeout_ms": 500,
                    "fallback_to": "cached",
                },
                {"id": "cached", "run": cached},
                {"id": "announce", "run": announce},
            ],
        }
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    config = ReliabilityConfig()
    config.setup_logging()

    intent = build_intent(args.failure_rate)
    ctx = ExecutionContext(input=args.city, telemetry=logging_telemetry_sink)
    result = asyncio.run(run_intent(intent, ctx))

    for event in result.trace:
        print(event.to_json())
    print(f"Success: {result.success}")
    print(f"Output: {result.output}")
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
