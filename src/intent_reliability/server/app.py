"""FastAPI app factory for the "Ask → Rewrite" demo.

Endpoints are thin wrappers: build a context per request, run the intent, and
return the result together with its full telemetry trace.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from intent_reliability import __version__
from intent_reliability.core.config import ReliabilityConfig
from intent_reliability.core.context import ExecutionContext
from intent_reliability.core.engine import run_intent
from intent_reliability.core.intent import Intent
from intent_reliability.core.telemetry import logging_telemetry_sink
from intent_reliability.demo import build_ask_intent
from intent_reliability.llm.factory import LLMFactory
from intent_reliability.llm.provider import ChatProvider
from intent_reliability.server.models import ApiError, AskRequest, AskResponse

logger = logging.getLogger(__name__)


def _default_providers(config: ReliabilityConfig) -> dict[str, ChatProvider]:
    # Local-first: the server starts without credentials; /ask then reports a
    # failed run instead of refusing to boot.
    if not config.llm.openai_api_key:
        logger.warning("No OpenAI API key configured; /api/ask runs will fail")
        return {}
    return {"openai": LLMFactory.create(config.llm)}


def create_app(
    config: ReliabilityConfig | None = None,
    *,
    providers: Mapping[str, object] | None = None,
    intent: Intent | None = None,
) -> FastAPI:
    """Build the demo app.

    Providers passed in stay owned by the caller. Providers built here from
    ``config`` are closed when the app shuts down.
    """
    config = config or ReliabilityConfig()
    owned: dict[str, ChatProvider] = {}
    if providers is None:
        owned = _default_providers(config)
        resolved_providers: dict[str, object] = dict(owned)
    else:
        resolved_providers = dict(providers)
    ask_intent = intent or build_ask_intent()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            for name, provider in owned.items():
                logger.info("Closing provider", extra={"provider": name})
                await provider.close()

    app = FastAPI(
        title="Intent Reliability",
        version=__version__,
        description="Demo API running an intent with retry, timeout and fallback policies.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.state.config = config

    @app.get("/api/health")
    def health() -> dict[str, object]:
        return {
            "status": "ok",
            "ok": True,
            "version": __version__,
            "intent": ask_intent.name,
            "providers": sorted(resolved_providers),
        }

    @app.post("/api/ask", response_model=AskResponse)
    async def ask(body: AskRequest, request: Request) -> AskResponse | JSONResponse:
        question = body.question.strip()
        if not question:
            raise HTTPException(status_code=400, detail="Body must include { question: string }")

        request_id = str(uuid.uuid4())
        ctx: ExecutionContext[dict[str, str]] = ExecutionContext(
            input={"question": question},
            providers=resolved_providers,
            metadata={
                "route": "/api/ask",
                "user_agent": request.headers.get("user-agent"),
                "mode": body.mode,
                "request_id": request_id,
            },
            telemetry=logging_telemetry_sink,
        )

        result = await run_intent(ask_intent, ctx, cancel_on_timeout=config.cancel_on_timeout)
        trace = [event.to_json() for event in result.trace]

        if not result.success:
            error = result.error
            logger.warning(
                "Ask intent failed",
                extra={"request_id": request_id, "error": repr(error)},
            )
            payload = AskResponse(
                request_id=request_id,
                ok=False,
                error=ApiError(
                    type=type(error).__name__ if error is not None else "Error",
                    message=str(error) if error is not None else "Intent failed",
                ),
                trace=trace,
            )
            return JSONResponse(status_code=502, content=payload.model_dump(mode="json"))

        return AskResponse(
            request_id=request_id,
            ok=True,
            answer=str(result.output),
            trace=trace,
        )

    return app
