"""Question bank: season-scoped question sets.

Correct answers only leave this module through :func:`correct_answers`,
which the attempt engine uses for scoring.  Everything handed to clients is
converted to :class:`QuestionRead` first.
"""

from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from seasonquiz.config import settings
from seasonquiz.core.errors import ValidationError
from seasonquiz.db.models import Question
from seasonquiz.schemas.question import QuestionCreate, QuestionRead

logger = logging.getLogger(__name__)


def questions_for_season(
    db: Session, season_id: uuid.UUID, *, shuffle: bool | None = None
) -> list[Question]:
    """Return the season's questions, shuffled per call unless disabled."""
    rows = list(
        db.scalars(
            select(Question)
            .where(Question.season_id == season_id)
            .order_by(Question.created_at, Question.id)
        )
    )
    if shuffle is None:
        shuffle = settings.SHUFFLE_QUESTIONS
    if shuffle:
        random.shuffle(rows)
    return rows


def client_view(questions: Iterable[Question]) -> list[QuestionRead]:
    """Strip correct answers for the client-facing read path."""
    return [QuestionRead.model_validate(q) for q in questions]


def get_question(db: Session, question_id: uuid.UUID) -> Question | None:
    return db.get(Question, question_id)


def correct_answers(db: Session, question_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, str]:
    """Map question id → correct option.  Internal use only."""
    ids = list(question_ids)
    if not ids:
        return {}
    rows = db.execute(
        select(Question.id, Question.correct_answer).where(Question.id.in_(ids))
    ).all()
    return {qid: answer for qid, answer in rows}


def season_question_ids(db: Session, season_id: uuid.UUID) -> set[uuid.UUID]:
    return set(db.scalars(select(Question.id).where(Question.season_id == season_id)))


def add_question(
    db: Session, data: QuestionCreate, season_id: uuid.UUID | None = None
) -> Question:
    """Insert a question after re-checking the option invariants."""
    if len(data.options) < 2:
        raise ValidationError("A question needs at least two options", code="invalid_question")
    if data.correct_answer not in data.options:
        raise ValidationError(
            "correct_answer must be one of the options", code="invalid_question"
        )

    question = Question(
        text=data.text,
        options=list(data.options),
        correct_answer=data.correct_answer,
        category=data.category,
        difficulty=data.difficulty,
        time_limit_seconds=data.time_limit_seconds or settings.DEFAULT_QUESTION_TIME_LIMIT_SECONDS,
        season_id=season_id,
    )
    db.add(question)
    db.commit()
    db.refresh(question)
    logger.debug("Added question %s to season %s", question.id, season_id)
    return question
