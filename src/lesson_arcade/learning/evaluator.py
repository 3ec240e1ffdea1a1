from __future__ import annotations

import logging
import math
from typing import Any, Dict

from lesson_arcade.config.schema import CallSitesConfig, ModelConfig
from lesson_arcade.errors import ArcadeError, ParseFailure
from lesson_arcade.gateway import GenerateRequest, ModelGateway
from lesson_arcade.learning.models import (
    FALLBACK_EVALUATION,
    Classification,
    EvaluationResult,
    QuizQuestion,
)
from lesson_arcade.learning.planner import parse_json_response

logger = logging.getLogger(__name__)

DEFAULT_RUBRIC = "Check for conceptual accuracy."

EVALUATION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "isCorrect": {"type": "BOOLEAN"},
        "score": {"type": "INTEGER", "description": "0-100"},
        "classification": {
            "type": "STRING",
            "enum": ["correct", "partially_correct", "incorrect"],
        },
        "feedback": {"type": "STRING", "description": "Coaching feedback or explanation."},
    },
    "required": ["isCorrect", "score", "classification", "feedback"],
}


def evaluation_from_payload(payload: Any) -> EvaluationResult:
    """
    Collapse the model's ``isCorrect``/``classification`` pair into one classification.

    ``classification`` wins when present and valid; otherwise the boolean decides
    between correct and incorrect. Scores are clamped to [0, 100].
    """
    if not isinstance(payload, dict):
        raise ParseFailure("Evaluation response must be a JSON object.")
    data: Dict[str, Any] = payload

    classification = None
    raw_class = data.get("classification")
    if isinstance(raw_class, str):
        try:
            classification = Classification(raw_class.strip().lower())
        except ValueError:
            classification = None
    if classification is None:
        flag = data.get("isCorrect", data.get("is_correct"))
        if not isinstance(flag, bool):
            raise ParseFailure("Evaluation response carries no usable classification.")
        classification = Classification.CORRECT if flag else Classification.INCORRECT

    try:
        value = float(data.get("score"))
    except (TypeError, ValueError, OverflowError):
        value = math.nan
    if math.isfinite(value):
        score = max(0, min(100, int(round(value))))
    elif value == math.inf:
        score = 100
    elif value == -math.inf:
        score = 0
    else:
        score = 100 if classification is Classification.CORRECT else 0

    feedback = data.get("feedback")
    return EvaluationResult(
        classification=classification,
        score=score,
        feedback=feedback.strip() if isinstance(feedback, str) else "",
    )


class AnswerEvaluator:
    """Grade learner answers with the model. Never raises to the caller."""

    def __init__(self, gateway: ModelGateway, model_config: ModelConfig, retry: CallSitesConfig):
        self.gateway = gateway
        self.model_config = model_config
        self.retry = retry

    def evaluate(self, question: QuizQuestion, answer: str) -> EvaluationResult:
        rubric = question.correct_answer or DEFAULT_RUBRIC
        prompt = (
            "Evaluate the student's answer.\n\n"
            f'Question: "{question.question}"\n'
            f'Student Answer: "{answer}"\n'
            f'Reference/Correct Answer/Rubric: "{rubric}"\n'
            f"Type: {question.type.value}\n\n"
            "Task:\n"
            "- If multiple_choice, check if the answer matches the reference.\n"
            "- If short_answer, score correctness 0-100 based on the reference rubric.\n"
            "- Provide helpful, encouraging, but concise feedback."
        )
        request = GenerateRequest(prompt=prompt, response_schema=EVALUATION_SCHEMA)
        try:
            raw = self.gateway.generate(
                request,
                primary=self.model_config.primary,
                fallback=self.model_config.fallback,
                policy=self.retry.evaluation,
            )
            return evaluation_from_payload(parse_json_response(raw, what="Evaluation"))
        except ArcadeError as exc:
            logger.error("Answer evaluation failed for question %s: %s", question.id, exc)
            return FALLBACK_EVALUATION.model_copy()
