from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from pydantic import TypeAdapter, ValidationError

from lesson_arcade.config.schema import CallSitesConfig, ModelConfig
from lesson_arcade.errors import ParseFailure
from lesson_arcade.gateway import GenerateRequest, ModelGateway
from lesson_arcade.learning.models import Audience, Difficulty, LessonLevel, LessonProject

logger = logging.getLogger(__name__)

PLAN_SYSTEM_INSTRUCTION = "You are a precise JSON generator for educational content."

QUESTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "id": {"type": "STRING"},
        "type": {"type": "STRING", "enum": ["multiple_choice", "short_answer"]},
        "question": {"type": "STRING"},
        "options": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Provide 4 options if type is multiple_choice. Empty if short_answer.",
        },
        "correctAnswer": {
            "type": "STRING",
            "description": "The correct option or a grading rubric/key facts for short answers.",
        },
        "explanation": {"type": "STRING", "description": "Why the answer is correct."},
        "points": {"type": "INTEGER", "description": "Suggest points (e.g. 10 or 20)."},
    },
    "required": ["id", "type", "question", "correctAnswer", "explanation", "points"],
}

LEVEL_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "id": {"type": "STRING"},
        "title": {"type": "STRING"},
        "description": {"type": "STRING"},
        "timeRangeStart": {"type": "STRING", "description": "Optional timestamp e.g. '00:00'"},
        "questions": {"type": "ARRAY", "items": QUESTION_SCHEMA},
    },
    "required": ["id", "title", "description", "questions"],
}

LESSON_PLAN_SCHEMA = {"type": "ARRAY", "items": LEVEL_SCHEMA}

_LEVELS_ADAPTER = TypeAdapter(List[LessonLevel])


def clean_json_payload(raw: str) -> str:
    """Strip a surrounding markdown code fence (optionally tagged ``json``) from model output."""
    text = raw.strip()
    if text.startswith("```"):
        fence_end = text.find("```", 3)
        if fence_end != -1:
            text = text[3:fence_end].strip()
        else:
            text = text[3:].strip()
        if text.startswith("json"):
            text = text[4:].strip()
    return text


def parse_json_response(raw: str, *, what: str) -> Any:
    cleaned = clean_json_payload(raw)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse %s response: %s", what, cleaned[:800])
        raise ParseFailure(f"{what} response was not valid JSON.") from exc


def _ensure_unique_ids(levels: List[LessonLevel]) -> List[LessonLevel]:
    """Re-key duplicate level/question ids so session bookkeeping can index by id."""
    seen_levels: set[str] = set()
    seen_questions: set[str] = set()
    result: List[LessonLevel] = []
    for index, level in enumerate(levels, start=1):
        level_id = level.id
        if level_id in seen_levels:
            level_id = f"{level.id}-{index}"
        seen_levels.add(level_id)

        questions = []
        for question in level.questions:
            question_id = question.id
            if question_id in seen_questions:
                question_id = f"{level_id}-{question.id}"
            seen_questions.add(question_id)
            questions.append(question.model_copy(update={"id": question_id}))
        result.append(level.model_copy(update={"id": level_id, "questions": questions}))
    return result


def parse_lesson_levels(raw: str) -> List[LessonLevel]:
    """Parse the lesson-plan response text into validated, uniquely-keyed levels."""
    payload = parse_json_response(raw, what="Lesson plan")
    if isinstance(payload, dict) and isinstance(payload.get("levels"), list):
        payload = payload["levels"]
    if not isinstance(payload, list):
        raise ParseFailure("Lesson plan response must be a JSON array of levels.")
    try:
        levels = _LEVELS_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        logger.error("Lesson plan validation failed: %s", exc)
        raise ParseFailure("Lesson plan response has an invalid structure.") from exc
    if not levels:
        raise ParseFailure("Lesson plan response contained no levels.")
    return _ensure_unique_ids(levels)


class LessonPlanner:
    """Generate lesson plans and video summaries through the model gateway."""

    def __init__(self, gateway: ModelGateway, model_config: ModelConfig, retry: CallSitesConfig):
        self.gateway = gateway
        self.model_config = model_config
        self.retry = retry

    def generate_lesson_plan(
        self,
        video_url: str,
        video_title: str,
        video_description: str = "",
        audience: Audience = Audience.INTERMEDIATE,
        difficulty: Difficulty = Difficulty.MEDIUM,
    ) -> LessonProject:
        """
        Build a LessonProject for a video.

        Gateway failures (``QuotaExhausted``, ``RemoteError``) propagate; an
        unusable response raises ``ParseFailure``.
        """
        audience = Audience(audience)
        difficulty = Difficulty(difficulty)
        prompt = (
            "You are an expert educational designer. Create a structured interactive lesson plan "
            "based on the following YouTube video context.\n\n"
            f"Video URL: {video_url}\n"
            f"Title: {video_title}\n"
            f"Description: {video_description}\n"
            f"Target Audience: {audience.value}\n"
            f"Difficulty: {difficulty.value}\n\n"
            "Instructions:\n"
            '1. Break the lesson into 3-5 distinct "Levels" representing logical progressions in the topic.\n'
            "2. For each level, generate 2-3 quiz questions. Mix multiple_choice and short_answer types.\n"
            "3. Ensure the content is appropriate for the target audience and difficulty.\n"
            "4. Return ONLY the JSON object for the list of levels."
        )
        request = GenerateRequest(
            prompt=prompt,
            response_schema=LESSON_PLAN_SCHEMA,
            system_instruction=PLAN_SYSTEM_INSTRUCTION,
        )
        raw = self.gateway.generate(
            request,
            primary=self.model_config.primary,
            fallback=self.model_config.fallback,
            policy=self.retry.lesson_plan,
        )
        levels = parse_lesson_levels(raw)
        project = LessonProject(
            video_url=video_url,
            video_title=video_title,
            video_description=video_description,
            audience=audience,
            difficulty=difficulty,
            levels=levels,
        )
        logger.info(
            "Generated lesson %s with %s levels and %s questions",
            project.id,
            len(project.levels),
            project.total_questions,
        )
        return project

    def generate_summary(
        self,
        video_title: str,
        author_name: Optional[str] = None,
        audience: Audience = Audience.INTERMEDIATE,
        difficulty: Difficulty = Difficulty.MEDIUM,
    ) -> str:
        """Return a short plain-text summary used to prefill the lesson description."""
        audience = Audience(audience)
        difficulty = Difficulty(difficulty)
        prompt = (
            "Write a concise summary (3-5 sentences) of what a learner can expect from this video, "
            "suitable as context for generating quiz questions.\n\n"
            f"Title: {video_title}\n"
            f"Author: {author_name or 'Unknown'}\n"
            f"Target Audience: {audience.value}\n"
            f"Difficulty: {difficulty.value}\n\n"
            "Respond with plain text only."
        )
        text = self.gateway.generate(
            GenerateRequest(prompt=prompt),
            primary=self.model_config.primary,
            fallback=self.model_config.fallback,
            policy=self.retry.summary,
        )
        return text.strip()
