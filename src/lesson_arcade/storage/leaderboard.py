from __future__ import annotations

import json
import logging
import time
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, field_validator

from lesson_arcade.errors import StorageFailure

from .kv_store import KeyValueStore

logger = logging.getLogger(__name__)

LEADERBOARD_PREFIX = "lessonarcade_lite_leaderboard_"
MAX_ENTRIES = 5
MAX_NAME_LENGTH = 15


def now_ms() -> int:
    return int(time.time() * 1000)


class LeaderboardEntry(BaseModel):
    """One finished attempt at a lesson."""

    name: str = Field(min_length=1)
    score: int
    accuracy: int = Field(ge=0, le=100)
    completed_at: int = Field(
        default_factory=now_ms,
        validation_alias=AliasChoices("completed_at", "completedAt"),
        serialization_alias="completedAt",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("name must not be blank")
        return cleaned


_ENTRIES_ADAPTER = TypeAdapter(List[LeaderboardEntry])


def rank_entries(entries: List[LeaderboardEntry], limit: int = MAX_ENTRIES) -> List[LeaderboardEntry]:
    """Sort by score then completion time, both descending, and keep the top ``limit``."""
    ordered = sorted(entries, key=lambda entry: (-entry.score, -entry.completed_at))
    return ordered[:limit]


class LeaderboardStore:
    """
    Bounded, ranked list of best attempts per lesson over a key-value store.

    Values are JSON arrays stored under ``<prefix><lesson_id>``. Names are
    clipped to ``max_name_length`` when recorded. Reads treat a
    missing or unparsable value as an empty board; failed writes are logged and
    the freshly ranked list is still returned to the caller.
    """

    def __init__(
        self,
        store: KeyValueStore,
        prefix: str = LEADERBOARD_PREFIX,
        max_entries: int = MAX_ENTRIES,
        max_name_length: int = MAX_NAME_LENGTH,
    ):
        self.store = store
        self.prefix = prefix
        self.max_entries = max_entries
        self.max_name_length = max_name_length

    def key_for(self, lesson_id: str) -> str:
        return f"{self.prefix}{lesson_id}"

    def read(self, lesson_id: str) -> List[LeaderboardEntry]:
        try:
            raw = self.store.get_item(self.key_for(lesson_id))
            if not raw:
                return []
            return _ENTRIES_ADAPTER.validate_python(json.loads(raw))
        except (OSError, ValueError) as exc:
            logger.error("Failed to parse leaderboard for %s: %s", lesson_id, exc)
            return []

    def record(self, lesson_id: str, entry: LeaderboardEntry) -> List[LeaderboardEntry]:
        if len(entry.name) > self.max_name_length:
            entry = entry.model_copy(update={"name": entry.name[: self.max_name_length]})
        ranked = rank_entries([*self.read(lesson_id), entry], self.max_entries)
        payload = json.dumps([item.model_dump(by_alias=True) for item in ranked])
        try:
            self._persist(lesson_id, payload)
        except StorageFailure as exc:
            logger.error("Failed to save leaderboard for %s: %s", lesson_id, exc)
        return ranked

    def qualifies(self, lesson_id: str, score: int, completed_at: Optional[int] = None) -> bool:
        """Whether an attempt with this score would make it onto the board right now."""
        current = self.read(lesson_id)
        if len(current) < self.max_entries:
            return True
        stamp = now_ms() if completed_at is None else completed_at
        lowest = current[-1]
        return (score, stamp) > (lowest.score, lowest.completed_at)

    def _persist(self, lesson_id: str, payload: str) -> None:
        try:
            self.store.set_item(self.key_for(lesson_id), payload)
        except (OSError, ValueError, TypeError) as exc:
            raise StorageFailure(str(exc)) from exc
