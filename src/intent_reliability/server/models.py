"""Pydantic models for the demo server."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

AskMode = Literal["retry", "timeout"]


class AskRequest(BaseModel):
    question: str
    mode: AskMode | None = None


class ApiError(BaseModel):
    type: str
    message: str


class AskResponse(BaseModel):
    request_id: str
    ok: bool
    answer: str | None = None
    error: ApiError | None = None
    trace: list[dict[str, object]] = Field(default_factory=list)
