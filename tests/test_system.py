"""End-to-end tests of the ArcadeSystem facade with a scripted backend."""

from __future__ import annotations

import json

import pytest

from conftest import FakeAPIError, ScriptedBackend, SleepRecorder, rate_limit_error
from lesson_arcade.config import Settings
from lesson_arcade.errors import LessonGenerationError
from lesson_arcade.storage import InMemoryKeyValueStore
from lesson_arcade.system import (
    PLAN_FAILED_MESSAGE,
    QUOTA_MESSAGE,
    SUMMARY_FAILED_MESSAGE,
    ArcadeSystem,
    load_project,
    save_project,
)
from test_planner import PLAN_LEVELS

PRIMARY = "gemini-3-pro-preview"
FALLBACK = "gemini-2.5-flash"


def build_system(script) -> tuple[ArcadeSystem, ScriptedBackend]:
    backend = ScriptedBackend(script)
    system = ArcadeSystem(
        Settings(),
        backend=backend,
        store=InMemoryKeyValueStore(),
        sleep=SleepRecorder(),
    )
    return system, backend


def test_create_lesson_returns_project():
    system, _ = build_system({PRIMARY: [json.dumps(PLAN_LEVELS)]})
    project = system.create_lesson("https://youtu.be/abc", "Arithmetic", audience="child", difficulty="easy")
    assert len(project.levels) == 2
    assert project.difficulty.value == "easy"


def test_quota_exhaustion_has_distinct_message():
    system, _ = build_system({PRIMARY: [rate_limit_error()], FALLBACK: [rate_limit_error()]})
    with pytest.raises(LessonGenerationError) as info:
        system.create_lesson("https://youtu.be/abc", "Arithmetic")
    assert str(info.value) == QUOTA_MESSAGE
    assert info.value.quota_exhausted


@pytest.mark.parametrize("outcome", [FakeAPIError("bad request", code=400), "not json"])
def test_other_generation_failures_ask_to_retry(outcome):
    system, backend = build_system({PRIMARY: [outcome], FALLBACK: ["unused"]})
    with pytest.raises(LessonGenerationError) as info:
        system.create_lesson("https://youtu.be/abc", "Arithmetic")
    assert str(info.value) == PLAN_FAILED_MESSAGE
    assert not info.value.quota_exhausted
    assert FALLBACK not in backend.calls


def test_summary_failure_message():
    system, _ = build_system({PRIMARY: [FakeAPIError("denied", code=403)]})
    with pytest.raises(LessonGenerationError) as info:
        system.summarize("Orbits", "Space Channel")
    assert str(info.value) == SUMMARY_FAILED_MESSAGE


def test_full_play_through_records_leaderboard(sample_project):
    verdicts = [
        json.dumps({"classification": "correct", "score": 100, "feedback": "Yes"}),
        json.dumps({"classification": "partially_correct", "score": 50, "feedback": "Half"}),
        json.dumps({"isCorrect": False, "score": 0, "feedback": "No"}),
        json.dumps({"classification": "correct", "score": 100, "feedback": "Yes"}),
    ]
    system, _ = build_system({PRIMARY: verdicts})
    session = system.start_session(sample_project)

    for level in sample_project.levels:
        session.select_level(level.id)
        for question in level.questions:
            system.submit_answer(session, question.id, "my answer")
        session.complete_level(level.id)

    assert session.is_course_complete
    assert session.score == 10 + 10 + 0 + 15
    assert session.accuracy == 50

    board = system.record_result(session, "Ada")
    assert [(e.name, e.score, e.accuracy) for e in board] == [("Ada", 35, 50)]
    assert system.read_leaderboard(sample_project.id) == board


def test_project_round_trips_through_json(tmp_path, sample_project):
    path = tmp_path / "lessons" / "lesson.json"
    save_project(sample_project, path)
    assert load_project(path) == sample_project


def test_configured_name_length_applies_to_recorded_results(sample_project):
    settings = Settings.model_validate({"leaderboard": {"max_name_length": 5}})
    system = ArcadeSystem(
        settings,
        backend=ScriptedBackend({PRIMARY: ["{}"]}),
        store=InMemoryKeyValueStore(),
        sleep=SleepRecorder(),
    )
    session = system.start_session(sample_project)

    board = system.record_result(session, "Alexandria")

    assert [e.name for e in board] == ["Alexa"]
