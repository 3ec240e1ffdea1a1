from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Set

from lesson_arcade.errors import EvaluationInProgress, LevelLocked, SessionError
from lesson_arcade.learning.models import (
    Classification,
    EvaluationResult,
    LessonLevel,
    LessonProject,
    QuizQuestion,
)

logger = logging.getLogger(__name__)

DEFAULT_QUESTION_POINTS = 10


class Evaluator(Protocol):
    def evaluate(self, question: QuizQuestion, answer: str) -> EvaluationResult:
        ...


@dataclass
class AnswerRecord:
    """What the learner submitted for one question and what it earned."""

    question_id: str
    answer: str
    evaluation: EvaluationResult
    points: int


@dataclass
class LevelSummary:
    """Totals shown when a level is finished."""

    level_id: str
    correct: int
    total: int
    points: int

    @property
    def accuracy(self) -> int:
        return percent(self.correct, self.total)

    @property
    def message(self) -> str:
        return level_message(self.accuracy)


def percent(part: int, whole: int) -> int:
    """Whole-number percentage with halves rounded up; 0 when there is nothing to count."""
    if not whole:
        return 0
    return math.floor(part * 100 / whole + 0.5)


def level_message(accuracy: int) -> str:
    if accuracy == 100:
        return "Perfect score! You've mastered this section."
    if accuracy >= 80:
        return "Great job! You're ready for the next level."
    return "Nice work. Consider reviewing this level to improve your score."


def points_for(question: QuizQuestion, evaluation: EvaluationResult) -> int:
    """Full points when correct, a score-weighted share when partially correct, else zero."""
    points = question.points or DEFAULT_QUESTION_POINTS
    if evaluation.classification is Classification.CORRECT:
        return points
    if evaluation.classification is Classification.PARTIALLY_CORRECT:
        return math.floor(points * evaluation.score / 100)
    return 0


@dataclass
class PlaySession:
    """
    Progress of one learner through one LessonProject.

    Score only ever grows within a session; the streak counts consecutive fully
    correct answers. ``in_flight`` holds the ids of questions whose evaluation
    has been sent but not yet returned, so a question cannot be submitted twice
    concurrently.
    """

    project: LessonProject
    current_level_id: Optional[str] = None
    score: int = 0
    streak: int = 0
    best_streak: int = 0
    completed_level_ids: List[str] = field(default_factory=list)
    answers: Dict[str, AnswerRecord] = field(default_factory=dict)
    in_flight: Set[str] = field(default_factory=set)

    @classmethod
    def start(cls, project: LessonProject) -> "PlaySession":
        session = cls(project=project)
        if project.levels:
            session.current_level_id = project.levels[0].id
        return session

    # --- level navigation ---
    @property
    def current_level(self) -> Optional[LessonLevel]:
        if self.current_level_id is None:
            return None
        return self.project.level(self.current_level_id)

    def is_unlocked(self, level_id: str) -> bool:
        for index, level in enumerate(self.project.levels):
            if level.id == level_id:
                return index == 0 or self.project.levels[index - 1].id in self.completed_level_ids
        return False

    def select_level(self, level_id: str) -> LessonLevel:
        level = self.project.level(level_id)
        if level is None:
            raise SessionError(f"Unknown level: {level_id}")
        if not self.is_unlocked(level_id):
            raise LevelLocked(f"Level {level.title!r} is locked until the previous level is completed.")
        self.current_level_id = level_id
        return level

    def next_unanswered(self, level_id: Optional[str] = None) -> Optional[QuizQuestion]:
        level = self.project.level(level_id) if level_id else self.current_level
        if level is None:
            return None
        return next((q for q in level.questions if q.id not in self.answers), None)

    # --- answering ---
    def submit_answer(self, question_id: str, answer: str, evaluator: Evaluator) -> EvaluationResult:
        """
        Evaluate ``answer`` for a question and fold the result into the session.

        Raises ``EvaluationInProgress`` while an evaluation for the same question is
        outstanding and ``SessionError`` for blank answers, unknown questions, or
        questions that were already answered.
        """
        if not answer or not answer.strip():
            raise SessionError("Answer must not be blank.")
        question = self.project.question(question_id)
        if question is None:
            raise SessionError(f"Unknown question: {question_id}")
        if question_id in self.in_flight:
            raise EvaluationInProgress(f"Question {question_id} is already being evaluated.")
        if question_id in self.answers:
            raise SessionError(f"Question {question_id} was already answered.")

        self.in_flight.add(question_id)
        try:
            evaluation = evaluator.evaluate(question, answer)
        finally:
            self.in_flight.discard(question_id)

        earned = points_for(question, evaluation)
        self.answers[question_id] = AnswerRecord(
            question_id=question_id, answer=answer, evaluation=evaluation, points=earned
        )
        self.score += earned
        if evaluation.is_correct:
            self.streak += 1
            self.best_streak = max(self.best_streak, self.streak)
        else:
            self.streak = 0
        logger.debug(
            "Question %s -> %s (+%s points, streak %s)",
            question_id,
            evaluation.classification.value,
            earned,
            self.streak,
        )
        return evaluation

    # --- completion ---
    def level_summary(self, level_id: str) -> LevelSummary:
        level = self.project.level(level_id)
        if level is None:
            raise SessionError(f"Unknown level: {level_id}")
        records = [self.answers[q.id] for q in level.questions if q.id in self.answers]
        return LevelSummary(
            level_id=level_id,
            correct=sum(1 for record in records if record.evaluation.is_correct),
            total=len(level.questions),
            points=sum(record.points for record in records),
        )

    def complete_level(self, level_id: str) -> LevelSummary:
        """
        Mark a level finished and return its summary.

        The level must be unlocked and every one of its questions answered;
        completing an already completed level just returns the summary again.
        """
        summary = self.level_summary(level_id)
        if not self.is_unlocked(level_id):
            raise LevelLocked(f"Level {level_id} is locked until the previous level is completed.")
        if self.next_unanswered(level_id) is not None:
            raise SessionError(f"Level {level_id} still has unanswered questions.")
        if level_id not in self.completed_level_ids:
            self.completed_level_ids.append(level_id)
        return summary

    @property
    def is_course_complete(self) -> bool:
        return all(level.id in self.completed_level_ids for level in self.project.levels)

    @property
    def correct_count(self) -> int:
        return sum(1 for record in self.answers.values() if record.evaluation.is_correct)

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    @property
    def accuracy(self) -> int:
        """Percentage of answered questions that were fully correct."""
        return percent(self.correct_count, self.answered_count)

    def reset(self) -> None:
        """Play the same lesson again from the first level."""
        self.score = 0
        self.streak = 0
        self.best_streak = 0
        self.completed_level_ids = []
        self.answers = {}
        self.in_flight = set()
        self.current_level_id = self.project.levels[0].id if self.project.levels else None
