from __future__ import annotations

import time
from typing import Callable, Optional

from lesson_arcade.config.schema import RetryPolicy
from lesson_arcade.errors import GatewayError, QuotaExhausted, RetryableError
from lesson_arcade.utils.logging import get_logger

from .base import ContentBackend, GenerateRequest, classify_error

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000


class ModelGateway:
    """
    Resilience layer over a single unreliable generate-content backend.

    ``invoke`` performs one attempt and normalizes failures into ``RateLimited``,
    ``Overloaded`` or ``RemoteError``. ``invoke_with_retry`` backs off
    exponentially on the two retryable kinds only, and ``invoke_with_fallback``
    moves to a cheaper model tier once the primary tier is out of retries.

    The gateway keeps no state between calls. ``sleep`` receives seconds and is
    injectable so tests can record delays instead of waiting.
    """

    def __init__(self, backend: ContentBackend, sleep: Callable[[float], None] = time.sleep):
        self.backend = backend
        self._sleep = sleep

    def invoke(self, model: str, request: GenerateRequest) -> str:
        try:
            return self.backend.generate(model, request)
        except GatewayError:
            raise
        except Exception as exc:
            raise classify_error(exc, model) from exc

    def invoke_with_retry(
        self,
        model: str,
        request: GenerateRequest,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    ) -> str:
        """Call ``invoke``, retrying up to ``max_retries`` times with delay base * 2**attempt."""
        attempt = 0
        while True:
            try:
                return self.invoke(model, request)
            except RetryableError as exc:
                if attempt >= max_retries:
                    logger.warning(
                        "gateway_retries_exhausted",
                        model=model,
                        retries=attempt,
                        error=type(exc).__name__,
                    )
                    raise
                delay_ms = base_delay_ms * (2 ** attempt)
                logger.info(
                    "gateway_retry",
                    model=model,
                    attempt=attempt + 1,
                    delay_ms=delay_ms,
                    error=type(exc).__name__,
                )
                self._sleep(delay_ms / 1000.0)
                attempt += 1

    def invoke_with_fallback(
        self,
        primary: str,
        fallback: Optional[str],
        request: GenerateRequest,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    ) -> str:
        """
        Run the retry loop on ``primary`` and, on retryable exhaustion, on ``fallback``.

        Non-retryable errors from either tier propagate unchanged. Exhausting both
        tiers (or the primary tier when no fallback is configured) raises
        ``QuotaExhausted``.
        """
        try:
            return self.invoke_with_retry(primary, request, max_retries, base_delay_ms)
        except RetryableError as exc:
            if fallback is None:
                raise QuotaExhausted(
                    f"Model {primary} exhausted retries and no fallback is configured.",
                    model=primary,
                ) from exc
            logger.warning("gateway_fallback", primary=primary, fallback=fallback, error=type(exc).__name__)

        try:
            return self.invoke_with_retry(fallback, request, max_retries, base_delay_ms)
        except RetryableError as exc:
            raise QuotaExhausted(
                f"Models {primary} and {fallback} both exhausted their retries.",
                model=fallback,
            ) from exc

    def generate(
        self,
        request: GenerateRequest,
        *,
        primary: str,
        fallback: Optional[str],
        policy: RetryPolicy,
    ) -> str:
        """Convenience wrapper applying a configured ``RetryPolicy`` to ``invoke_with_fallback``."""
        return self.invoke_with_fallback(
            primary,
            fallback,
            request,
            max_retries=policy.max_retries,
            base_delay_ms=policy.base_delay_ms,
        )
