"""Tests for answer evaluation, including the connection-error fallback result."""

from __future__ import annotations

import json

import pytest

from conftest import FakeAPIError, overload_error, rate_limit_error
from lesson_arcade.errors import ParseFailure
from lesson_arcade.learning import AnswerEvaluator, Classification
from lesson_arcade.learning.evaluator import DEFAULT_RUBRIC, EVALUATION_SCHEMA, evaluation_from_payload
from lesson_arcade.learning.models import CONNECTION_ERROR_FEEDBACK


def test_classification_takes_precedence_over_flag():
    result = evaluation_from_payload(
        {"isCorrect": True, "score": 60, "classification": "partially_correct", "feedback": "Almost"}
    )
    assert result.classification is Classification.PARTIALLY_CORRECT
    assert not result.is_correct
    assert result.score == 60


def test_flag_used_when_classification_missing():
    result = evaluation_from_payload({"isCorrect": True, "feedback": "Yes"})
    assert result.classification is Classification.CORRECT
    assert result.is_correct
    assert result.score == 100


def test_score_is_clamped():
    assert evaluation_from_payload({"classification": "correct", "score": 140}).score == 100
    assert evaluation_from_payload({"classification": "incorrect", "score": -5}).score == 0


@pytest.mark.parametrize("payload", [[], {"score": 10}, {"classification": "maybe"}])
def test_unusable_payload_raises(payload):
    with pytest.raises(ParseFailure):
        evaluation_from_payload(payload)


@pytest.fixture
def evaluator_factory(make_gateway, model_config, call_sites):
    def _make(script):
        gateway, backend = make_gateway(script)
        return AnswerEvaluator(gateway, model_config, call_sites), backend

    return _make


def test_evaluate_parses_model_response(evaluator_factory, sample_project):
    response = json.dumps(
        {"isCorrect": True, "score": 100, "classification": "correct", "feedback": "Spot on."}
    )
    evaluator, backend = evaluator_factory({"primary-model": [response]})
    question = sample_project.question("q1")

    result = evaluator.evaluate(question, "Gravity")

    assert result.is_correct
    assert result.feedback == "Spot on."
    request = backend.requests[0]
    assert request.response_schema == EVALUATION_SCHEMA
    assert 'Student Answer: "Gravity"' in request.prompt
    assert 'Reference/Correct Answer/Rubric: "Gravity"' in request.prompt
    assert "Type: multiple_choice" in request.prompt


def test_missing_reference_uses_default_rubric(evaluator_factory, sample_project):
    evaluator, backend = evaluator_factory({"primary-model": ['{"classification": "incorrect", "score": 0}']})
    evaluator.evaluate(sample_project.question("q4"), "Equal areas in equal times")
    assert DEFAULT_RUBRIC in backend.requests[0].prompt


def test_quota_exhaustion_yields_fallback_result(evaluator_factory, sample_project, sleeps):
    evaluator, backend = evaluator_factory(
        {"primary-model": [overload_error()], "fallback-model": [rate_limit_error()]}
    )
    result = evaluator.evaluate(sample_project.question("q2"), "It keeps moving")

    assert result.classification is Classification.INCORRECT
    assert result.score == 0
    assert result.feedback == CONNECTION_ERROR_FEEDBACK
    assert backend.calls.count("fallback-model") == 4
    assert sleeps.delays == [1.0, 2.0, 4.0, 1.0, 2.0, 4.0]


@pytest.mark.parametrize("outcome", ["this is not json", FakeAPIError("bad request", code=400)])
def test_other_failures_yield_fallback_result(evaluator_factory, sample_project, outcome):
    evaluator, _ = evaluator_factory({"primary-model": [outcome]})
    result = evaluator.evaluate(sample_project.question("q1"), "Gravity")
    assert result.feedback == CONNECTION_ERROR_FEEDBACK
    assert not result.is_correct


@pytest.mark.parametrize(
    "score, expected",
    [(float("inf"), 100), (float("-inf"), 0), ("1e999", 100), (float("nan"), 100)],
)
def test_non_finite_scores_are_clamped(score, expected):
    result = evaluation_from_payload({"classification": "correct", "score": score})
    assert result.score == expected


def test_oversized_integer_score_falls_back_to_classification():
    result = evaluation_from_payload({"classification": "incorrect", "score": 10**400})
    assert result.score == 0


@pytest.mark.parametrize("raw_score", ["1e999", "Infinity", "-Infinity", "NaN"])
def test_evaluate_survives_non_finite_score(evaluator_factory, sample_project, raw_score):
    response = '{"classification": "correct", "score": %s, "feedback": "x"}' % raw_score
    evaluator, _ = evaluator_factory({"primary-model": [response]})

    result = evaluator.evaluate(sample_project.question("q1"), "Gravity")

    assert result.is_correct
    assert 0 <= result.score <= 100
