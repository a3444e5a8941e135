"""Tests for season-scoped question sets."""

import pytest

from seasonquiz.core.errors import ValidationError
from seasonquiz.schemas.question import QuestionCreate
from seasonquiz.services import question_bank


def test_only_the_seasons_questions_are_returned(db, make_season, make_questions):
    season = make_season("Mine")
    other = make_season("Other", is_active=False)
    mine = make_questions(season, count=4)
    make_questions(other, count=3)
    make_questions(None, count=2)

    rows = question_bank.questions_for_season(db, season.id)

    assert {q.id for q in rows} == {q.id for q in mine}


def test_unshuffled_order_is_stable(db, make_season, make_questions):
    season = make_season()
    make_questions(season, count=5)
    first = [q.id for q in question_bank.questions_for_season(db, season.id, shuffle=False)]
    second = [q.id for q in question_bank.questions_for_season(db, season.id, shuffle=False)]
    assert first == second


def test_client_view_strips_correct_answer(db, make_season, make_questions):
    season = make_season()
    make_questions(season, count=2)
    view = question_bank.client_view(question_bank.questions_for_season(db, season.id))
    assert len(view) == 2
    for item in view:
        dumped = item.model_dump()
        assert "correct_answer" not in dumped
        assert len(dumped["options"]) == 2


def test_correct_answers_maps_ids(db, make_season, make_questions):
    season = make_season()
    questions = make_questions(season, count=3)
    key = question_bank.correct_answers(db, [q.id for q in questions[:2]])
    assert key == {questions[0].id: "right 0", questions[1].id: "right 1"}
    assert question_bank.correct_answers(db, []) == {}


def test_season_question_ids(db, make_season, make_questions):
    season = make_season()
    questions = make_questions(season, count=3)
    assert question_bank.season_question_ids(db, season.id) == {q.id for q in questions}


def test_add_question_applies_default_time_limit(db, make_season):
    season = make_season()
    created = question_bank.add_question(
        db,
        QuestionCreate(text="Capital of France?", options=["Paris", "Lyon"], correct_answer="Paris"),
        season.id,
    )
    assert created.season_id == season.id
    assert created.time_limit_seconds == 30
    assert question_bank.get_question(db, created.id).correct_answer == "Paris"


def test_add_question_rechecks_options(db):
    payload = QuestionCreate.model_construct(
        text="Broken?", options=["A", "B"], correct_answer="C",
        category="General", difficulty="medium", time_limit_seconds=None,
    )
    with pytest.raises(ValidationError) as exc:
        question_bank.add_question(db, payload)
    assert exc.value.code == "invalid_question"


def test_question_schema_rejects_answer_outside_options():
    with pytest.raises(ValueError):
        QuestionCreate(text="Q?", options=["A", "B"], correct_answer="C")
