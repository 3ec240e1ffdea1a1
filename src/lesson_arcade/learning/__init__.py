from .evaluator import AnswerEvaluator
from .models import (
    Audience,
    Classification,
    Difficulty,
    EvaluationResult,
    LessonLevel,
    LessonProject,
    QuestionType,
    QuizQuestion,
)
from .planner import LessonPlanner
from .session import LevelSummary, PlaySession

__all__ = [
    "AnswerEvaluator",
    "Audience",
    "Classification",
    "Difficulty",
    "EvaluationResult",
    "LessonLevel",
    "LessonPlanner",
    "LessonProject",
    "LevelSummary",
    "PlaySession",
    "QuestionType",
    "QuizQuestion",
]
