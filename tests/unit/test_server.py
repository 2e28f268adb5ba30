"""Tests for the FastAPI demo server."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from intent_reliability.core.config import ReliabilityConfig
from intent_reliability.demo import ASK_INTENT_NAME, build_ask_intent
from intent_reliability.llm.factory import LLMFactory
from intent_reliability.server.app import create_app


def _client(config: ReliabilityConfig, providers: dict[str, object], **intent_kwargs: int) -> TestClient:
    intent = build_ask_intent(**intent_kwargs)
    return TestClient(create_app(config, providers=providers, intent=intent))


def test_health(reliability_config: ReliabilityConfig, echo_provider) -> None:
    client = _client(reliability_config, {"openai": echo_provider})

    health = client.get("/api/health").json()

    assert health["status"] == "ok"
    assert health["ok"] is True
    assert health["intent"] == ASK_INTENT_NAME
    assert health["providers"] == ["openai"]
    assert "version" in health


def test_ask_runs_both_steps(reliability_config: ReliabilityConfig, echo_provider) -> None:
    echo_provider.replies = ["The sky scatters blue light.", "sky scatters blue light more"]
    client = _client(reliability_config, {"openai": echo_provider})

    resp = client.post("/api/ask", json={"question": "why is the sky blue?"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["answer"] == "sky scatters blue light more"
    assert body["request_id"]
    started = [e["step_id"] for e in body["trace"] if e["kind"] == "step_started"]
    assert started == ["primary_answer", "rewrite_5_words"]
    assert "Question: why is the sky blue?" in echo_provider.requests[0].prompt
    assert "Text: The sky scatters blue light." in echo_provider.requests[1].prompt


def test_ask_retry_mode_recovers(reliability_config: ReliabilityConfig, echo_provider) -> None:
    client = _client(reliability_config, {"openai": echo_provider})

    body = client.post("/api/ask", json={"question": "hi", "mode": "retry"}).json()

    assert body["ok"] is True
    failed = [e for e in body["trace"] if e["kind"] == "retry_attempt_failed"]
    assert len(failed) == 1
    assert failed[0]["step_id"] == "primary_answer"
    assert failed[0]["attempt"] == 1
    assert failed[0]["error"]["type"] == "SyntheticFailure"


def test_ask_timeout_mode_fails_with_502(reliability_config: ReliabilityConfig, echo_provider) -> None:
    client = _client(reliability_config, {"openai": echo_provider}, answer_timeout_ms=20)

    resp = client.post("/api/ask", json={"question": "hi", "mode": "timeout"})

    assert resp.status_code == 502
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["type"] == "RetryExhaustedError"
    kinds = [e["kind"] for e in body["trace"]]
    assert kinds.count("timeout_fired") == 3
    assert kinds[-1] == "intent_finished"


def test_ask_without_provider_reports_failed_run(reliability_config: ReliabilityConfig) -> None:
    client = _client(reliability_config, {})

    resp = client.post("/api/ask", json={"question": "hi"})

    assert resp.status_code == 502
    assert 'No provider registered as "openai"' in resp.json()["error"]["message"]


def test_ask_rejects_blank_question(reliability_config: ReliabilityConfig, echo_provider) -> None:
    client = _client(reliability_config, {"openai": echo_provider})

    resp = client.post("/api/ask", json={"question": "   "})

    assert resp.status_code == 400


def test_ask_rejects_unknown_mode(reliability_config: ReliabilityConfig, echo_provider) -> None:
    client = _client(reliability_config, {"openai": echo_provider})

    resp = client.post("/api/ask", json={"question": "hi", "mode": "explode"})

    assert resp.status_code == 422


def test_configured_provider_is_closed_on_shutdown(
    monkeypatch: pytest.MonkeyPatch, reliability_config: ReliabilityConfig, echo_provider
) -> None:
    monkeypatch.setattr(LLMFactory, "create", staticmethod(lambda config: echo_provider))
    app = create_app(reliability_config)

    with TestClient(app) as client:
        assert client.get("/api/health").json()["providers"] == ["openai"]
        assert echo_provider.closed is False

    assert echo_provider.closed is True


def test_injected_providers_are_left_open(
    reliability_config: ReliabilityConfig, echo_provider
) -> None:
    with TestClient(create_app(reliability_config, providers={"openai": echo_provider})):
        pass

    assert echo_provider.closed is False
