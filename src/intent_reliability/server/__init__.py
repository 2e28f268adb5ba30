"""FastAPI demo server for intent-reliability.

Design intent:
- Keep execution logic in `intent_reliability.core.*`
- Keep server-specific concerns (routing, request ids, HTTP status) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from intent_reliability.server.app import create_app
