from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

from lesson_arcade.config import Settings, load_settings
from lesson_arcade.errors import LessonGenerationError, QuotaExhausted, RemoteError
from lesson_arcade.gateway import ContentBackend, ModelGateway, create_backend
from lesson_arcade.learning import (
    AnswerEvaluator,
    Audience,
    Difficulty,
    EvaluationResult,
    LessonPlanner,
    LessonProject,
    PlaySession,
)
from lesson_arcade.media import VideoMetadata, fetch_video_metadata
from lesson_arcade.storage import (
    JsonFileKeyValueStore,
    KeyValueStore,
    LeaderboardEntry,
    LeaderboardStore,
)
from lesson_arcade.utils.logging import bound_contextvars, configure_logging

logger = logging.getLogger(__name__)

QUOTA_MESSAGE = "Usage limit reached. Please try again later."
PLAN_FAILED_MESSAGE = "Failed to generate lesson plan. Please try again."
SUMMARY_FAILED_MESSAGE = "Failed to generate summary. Please try again."


class ArcadeSystem:
    """
    Facade wiring configuration, the model gateway, lesson planning, answer
    evaluation and the leaderboard together for the CLI.

    Lesson-plan and summary failures are turned into ``LessonGenerationError``
    with a message that tells quota exhaustion apart from other failures.
    Answer evaluation never raises (see ``AnswerEvaluator``), and leaderboard
    writes never raise (see ``LeaderboardStore``).
    """

    def __init__(
        self,
        settings: Settings,
        *,
        backend: Optional[ContentBackend] = None,
        api_key: Optional[str] = None,
        store: Optional[KeyValueStore] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        configure_logging(settings.logging.level, settings.logging.use_json)

        self.gateway = ModelGateway(backend or create_backend(settings.model, api_key=api_key), sleep=sleep)
        self.planner = LessonPlanner(self.gateway, settings.model, settings.retry)
        self.evaluator = AnswerEvaluator(self.gateway, settings.model, settings.retry)
        self.leaderboard = LeaderboardStore(
            store or JsonFileKeyValueStore(settings.leaderboard.path),
            prefix=settings.leaderboard.key_prefix,
            max_entries=settings.leaderboard.max_entries,
            max_name_length=settings.leaderboard.max_name_length,
        )

    @classmethod
    def from_config(
        cls,
        config_path: str | Path | None = None,
        api_key: Optional[str] = None,
    ) -> "ArcadeSystem":
        """Load settings from YAML (plus env overrides) and build a ready system."""
        return cls(load_settings(config_path), api_key=api_key)

    # --- setup ---
    def create_lesson(
        self,
        video_url: str,
        video_title: str,
        video_description: str = "",
        audience: Audience | str = Audience.INTERMEDIATE,
        difficulty: Difficulty | str = Difficulty.MEDIUM,
    ) -> LessonProject:
        try:
            with bound_contextvars(video_url=video_url):
                return self.planner.generate_lesson_plan(
                    video_url,
                    video_title,
                    video_description,
                    Audience(audience),
                    Difficulty(difficulty),
                )
        except QuotaExhausted as exc:
            logger.error("Lesson generation hit the usage limit: %s", exc)
            raise LessonGenerationError(QUOTA_MESSAGE, quota_exhausted=True) from exc
        except RemoteError as exc:
            logger.error("Lesson generation failed: %s", exc)
            raise LessonGenerationError(PLAN_FAILED_MESSAGE) from exc

    def fetch_metadata(self, video_url: str) -> VideoMetadata:
        return fetch_video_metadata(
            video_url,
            endpoint=self.settings.metadata.oembed_endpoint,
            timeout=self.settings.metadata.timeout_seconds,
        )

    def summarize(
        self,
        video_title: str,
        author_name: Optional[str] = None,
        audience: Audience | str = Audience.INTERMEDIATE,
        difficulty: Difficulty | str = Difficulty.MEDIUM,
    ) -> str:
        try:
            return self.planner.generate_summary(
                video_title, author_name, Audience(audience), Difficulty(difficulty)
            )
        except QuotaExhausted as exc:
            raise LessonGenerationError(QUOTA_MESSAGE, quota_exhausted=True) from exc
        except RemoteError as exc:
            logger.error("Summary generation failed: %s", exc)
            raise LessonGenerationError(SUMMARY_FAILED_MESSAGE) from exc

    # --- play ---
    def start_session(self, project: LessonProject) -> PlaySession:
        return PlaySession.start(project)

    def submit_answer(self, session: PlaySession, question_id: str, answer: str) -> EvaluationResult:
        return session.submit_answer(question_id, answer, self.evaluator)

    # --- leaderboard ---
    def read_leaderboard(self, lesson_id: str) -> List[LeaderboardEntry]:
        return self.leaderboard.read(lesson_id)

    def record_result(self, session: PlaySession, name: str) -> List[LeaderboardEntry]:
        entry = LeaderboardEntry(name=name, score=session.score, accuracy=session.accuracy)
        return self.leaderboard.record(session.project.id, entry)


def save_project(project: LessonProject, path: Path) -> None:
    """Write a lesson project to disk as JSON so it can be replayed later."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        handle.write(project.model_dump_json(indent=2))


def load_project(path: Path) -> LessonProject:
    with path.open("r", encoding="utf-8") as handle:
        return LessonProject.model_validate(json.load(handle))
