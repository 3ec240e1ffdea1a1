from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel, Field

from lesson_arcade.errors import GatewayError, Overloaded, RateLimited, RemoteError

RATE_LIMIT_MARKERS = ("429", "quota", "resource_exhausted", "rate limit")
OVERLOAD_MARKERS = ("503", "unavailable", "overloaded")


class GenerateRequest(BaseModel):
    """Parameters of a single generate-content call (the model id travels separately)."""

    prompt: str
    response_schema: Optional[Dict[str, Any]] = Field(
        default=None, description="Structured-output schema; response is JSON text when set."
    )
    system_instruction: Optional[str] = None


class ContentBackend(Protocol):
    """Anything that can turn a request into generated text for a named model."""

    def generate(self, model: str, request: GenerateRequest) -> str:
        ...


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    return None


def classify_error(exc: BaseException, model: Optional[str] = None) -> GatewayError:
    """
    Map an arbitrary backend exception onto the gateway taxonomy.

    The numeric status (``status_code`` or ``code``), the textual ``status`` and
    the message are all inspected, since the Gemini and OpenAI SDKs expose quota
    and availability signals differently.
    """
    if isinstance(exc, GatewayError):
        return exc

    code = _status_code(exc)
    status = getattr(exc, "status", None)
    haystack = " ".join(
        part for part in (str(exc), status if isinstance(status, str) else "") if part
    ).lower()

    if code == 429 or any(marker in haystack for marker in RATE_LIMIT_MARKERS):
        return RateLimited(str(exc) or "rate limited", model=model)
    if code == 503 or any(marker in haystack for marker in OVERLOAD_MARKERS):
        return Overloaded(str(exc) or "model overloaded", model=model)
    return RemoteError(str(exc) or exc.__class__.__name__, model=model)
