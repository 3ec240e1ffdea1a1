from __future__ import annotations

import uuid
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Audience(str, Enum):
    CHILD = "child"
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    PROFESSIONAL = "professional"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_ANSWER = "short_answer"


class Classification(str, Enum):
    CORRECT = "correct"
    PARTIALLY_CORRECT = "partially_correct"
    INCORRECT = "incorrect"


class QuizQuestion(BaseModel):
    """Single quiz item; ``options`` is only meaningful for multiple choice."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: QuestionType
    question: str
    options: List[str] = Field(default_factory=list)
    correct_answer: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("correct_answer", "correctAnswer")
    )
    explanation: Optional[str] = None
    points: int = Field(10, ge=0)

    @field_validator("options", mode="before")
    @classmethod
    def null_options_to_empty(cls, value):
        return [] if value is None else value

    @property
    def is_multiple_choice(self) -> bool:
        return self.type is QuestionType.MULTIPLE_CHOICE and bool(self.options)


class LessonLevel(BaseModel):
    """Thematic group of questions within a lesson."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: str = ""
    time_range_start: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("time_range_start", "timeRangeStart")
    )
    time_range_end: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("time_range_end", "timeRangeEnd")
    )
    questions: List[QuizQuestion] = Field(default_factory=list)


class LessonProject(BaseModel):
    """A generated course for one source video. Frozen once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    video_url: str
    video_title: str
    video_description: str = ""
    audience: Audience = Audience.INTERMEDIATE
    difficulty: Difficulty = Difficulty.MEDIUM
    levels: List[LessonLevel]

    def level(self, level_id: str) -> Optional[LessonLevel]:
        return next((level for level in self.levels if level.id == level_id), None)

    def question(self, question_id: str) -> Optional[QuizQuestion]:
        for level in self.levels:
            for question in level.questions:
                if question.id == question_id:
                    return question
        return None

    @property
    def total_questions(self) -> int:
        return sum(len(level.questions) for level in self.levels)


class EvaluationResult(BaseModel):
    """
    Outcome of grading one answer.

    Correctness is carried only by ``classification``; ``is_correct`` is derived
    from it rather than stored alongside.
    """

    classification: Classification
    score: int = Field(ge=0, le=100)
    feedback: str = ""

    @property
    def is_correct(self) -> bool:
        return self.classification is Classification.CORRECT


CONNECTION_ERROR_FEEDBACK = (
    "We couldn't evaluate your answer due to a connection error. Please try again."
)

FALLBACK_EVALUATION = EvaluationResult(
    classification=Classification.INCORRECT,
    score=0,
    feedback=CONNECTION_ERROR_FEEDBACK,
)
