"""Exception hierarchy shared by the gateway, storage, and play-session layers."""

from __future__ import annotations

from typing import Optional


class ArcadeError(Exception):
    """Base class for every error raised by lesson_arcade."""


class GatewayError(ArcadeError):
    """Failure while talking to the remote content-generation service."""

    def __init__(self, message: str, *, model: Optional[str] = None):
        super().__init__(message)
        self.model = model


class RetryableError(GatewayError):
    """Transient remote condition that the gateway recovers from with backoff."""


class RateLimited(RetryableError):
    """Remote signalled 429 / quota / resource exhaustion."""


class Overloaded(RetryableError):
    """Remote signalled 503 / temporary unavailability."""


class RemoteError(GatewayError):
    """Non-retryable remote failure (bad request, auth failure, schema mismatch)."""


class ParseFailure(RemoteError):
    """Response text did not parse into the expected JSON structure."""


class QuotaExhausted(GatewayError):
    """Both model tiers exhausted their retries on rate-limit or overload grounds."""


class StorageFailure(ArcadeError):
    """Persisting a value to the key-value store failed."""


class SessionError(ArcadeError):
    """Invalid action for the current play session."""


class EvaluationInProgress(SessionError):
    """An evaluation for this question is already in flight."""


class LevelLocked(SessionError):
    """The requested level cannot be played until its predecessor is completed."""


class MetadataLookupError(ArcadeError):
    """The oEmbed metadata lookup for a video URL failed."""


class LessonGenerationError(ArcadeError):
    """User-facing failure for lesson plan or summary generation."""

    def __init__(self, message: str, *, quota_exhausted: bool = False):
        super().__init__(message)
        self.quota_exhausted = quota_exhausted
