"""Shared fixtures: scripted model backends, recorded sleeps, and a sample lesson."""

from __future__ import annotations

from typing import Dict, List, Sequence, Union

import pytest

from lesson_arcade.config import CallSitesConfig, ModelConfig
from lesson_arcade.gateway import GenerateRequest, ModelGateway
from lesson_arcade.learning.models import LessonLevel, LessonProject, QuestionType, QuizQuestion

Outcome = Union[str, BaseException]


class FakeAPIError(Exception):
    """Mimics SDK errors that carry a numeric ``code`` and a textual ``status``."""

    def __init__(self, message: str, code: int | None = None, status: str | None = None):
        super().__init__(message)
        self.code = code
        self.status = status


def rate_limit_error() -> FakeAPIError:
    return FakeAPIError("429 RESOURCE_EXHAUSTED", code=429, status="RESOURCE_EXHAUSTED")


def overload_error() -> FakeAPIError:
    return FakeAPIError("503 The model is overloaded.", code=503, status="UNAVAILABLE")


class ScriptedBackend:
    """Backend replaying a per-model script; the final outcome repeats forever."""

    def __init__(self, script: Dict[str, Sequence[Outcome]]):
        self.script: Dict[str, List[Outcome]] = {model: list(items) for model, items in script.items()}
        self.calls: List[str] = []
        self.requests: List[GenerateRequest] = []

    def generate(self, model: str, request: GenerateRequest) -> str:
        self.calls.append(model)
        self.requests.append(request)
        outcomes = self.script[model]
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def model_config() -> ModelConfig:
    return ModelConfig(provider="gemini", primary="primary-model", fallback="fallback-model")


@pytest.fixture
def call_sites() -> CallSitesConfig:
    return CallSitesConfig()


@pytest.fixture
def make_gateway(sleeps):
    def _make(script: Dict[str, Sequence[Outcome]]) -> tuple[ModelGateway, ScriptedBackend]:
        backend = ScriptedBackend(script)
        return ModelGateway(backend, sleep=sleeps), backend

    return _make


@pytest.fixture
def sample_project() -> LessonProject:
    """Two-level lesson with one multiple-choice and one short-answer question per level."""
    return LessonProject(
        id="lesson-1",
        video_url="https://www.youtube.com/watch?v=abc123",
        video_title="Intro to Orbits",
        levels=[
            LessonLevel(
                id="level-1",
                title="Gravity",
                description="What keeps planets in orbit.",
                time_range_start="00:00",
                questions=[
                    QuizQuestion(
                        id="q1",
                        type=QuestionType.MULTIPLE_CHOICE,
                        question="Which force keeps the Moon in orbit?",
                        options=["Magnetism", "Gravity", "Friction", "Tension"],
                        correct_answer="Gravity",
                        explanation="Gravity provides the centripetal force.",
                        points=10,
                    ),
                    QuizQuestion(
                        id="q2",
                        type=QuestionType.SHORT_ANSWER,
                        question="Why doesn't the Moon fall into the Earth?",
                        correct_answer="Its tangential velocity keeps it falling around the Earth.",
                        points=20,
                    ),
                ],
            ),
            LessonLevel(
                id="level-2",
                title="Kepler",
                description="Orbital laws.",
                questions=[
                    QuizQuestion(
                        id="q3",
                        type=QuestionType.MULTIPLE_CHOICE,
                        question="What shape are planetary orbits?",
                        options=["Circles", "Ellipses", "Parabolas", "Squares"],
                        correct_answer="Ellipses",
                        points=0,
                    ),
                    QuizQuestion(
                        id="q4",
                        type=QuestionType.SHORT_ANSWER,
                        question="State Kepler's second law.",
                        points=15,
                    ),
                ],
            ),
        ],
    )
