"""Attempt store: persistence for attempts and their per-question progress.

The store flushes but never commits; the attempt engine owns the transaction
boundary.  Uniqueness is enforced by the database:

- ``uq_attempt_user_season``        one attempt per (user, season)
- ``uq_progress_attempt_question``  one progress row per (attempt, question)

and completion is a conditional UPDATE guarded on ``completed = false``.
A violated guard surfaces as :class:`ConflictError`; the session must then be
rolled back by the caller.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seasonquiz.core.errors import ConflictError, NotFoundError
from seasonquiz.db.models import Attempt, AttemptProgress, User
from seasonquiz.schemas.attempt import AttemptSummaryRead


# ── Lookups ───────────────────────────────────────────────────────────────────


def find_attempt(db: Session, user_id: uuid.UUID, season_id: uuid.UUID) -> Attempt | None:
    """The user's attempt for the season, in any state."""
    return db.scalars(
        select(Attempt).where(Attempt.user_id == user_id, Attempt.season_id == season_id)
    ).first()


def find_active_attempt(
    db: Session, user_id: uuid.UUID, season_id: uuid.UUID
) -> Attempt | None:
    """The user's non-completed attempt for the season, if any."""
    return db.scalars(
        select(Attempt).where(
            Attempt.user_id == user_id,
            Attempt.season_id == season_id,
            Attempt.completed.is_(False),
        )
    ).first()


def latest_attempt(
    db: Session, user_id: uuid.UUID, *, completed_only: bool = False
) -> Attempt | None:
    stmt = select(Attempt).where(Attempt.user_id == user_id)
    if completed_only:
        stmt = stmt.where(Attempt.completed.is_(True)).order_by(Attempt.completed_at.desc())
    else:
        stmt = stmt.order_by(Attempt.started_at.desc())
    return db.scalars(stmt.limit(1)).first()


def lock_attempt(db: Session, attempt_id: uuid.UUID) -> Attempt | None:
    """Load the attempt row with ``SELECT … FOR UPDATE``.

    ``populate_existing`` makes sure a cached identity is refreshed with the
    locked row's values.
    """
    return db.scalars(
        select(Attempt)
        .where(Attempt.id == attempt_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()


def has_progress(db: Session, attempt_id: uuid.UUID, question_id: uuid.UUID) -> bool:
    return (
        db.scalar(
            select(AttemptProgress.id).where(
                AttemptProgress.attempt_id == attempt_id,
                AttemptProgress.question_id == question_id,
            )
        )
        is not None
    )


def progress_rows(db: Session, attempt_id: uuid.UUID) -> list[AttemptProgress]:
    return list(
        db.scalars(
            select(AttemptProgress)
            .where(AttemptProgress.attempt_id == attempt_id)
            .order_by(AttemptProgress.answered_at, AttemptProgress.id)
        )
    )


def progress_counts(db: Session, attempt_id: uuid.UUID) -> tuple[int, int]:
    """Return ``(answered_count, correct_count)`` for the attempt."""
    answered, correct = db.execute(
        select(
            func.count(AttemptProgress.id),
            func.coalesce(
                func.sum(case((AttemptProgress.is_correct.is_(True), 1), else_=0)), 0
            ),
        ).where(AttemptProgress.attempt_id == attempt_id)
    ).one()
    return int(answered), int(correct)


# ── Writes ────────────────────────────────────────────────────────────────────


def create_attempt(
    db: Session,
    user_id: uuid.UUID,
    season_id: uuid.UUID,
    total_questions: int,
    started_at: datetime,
) -> Attempt:
    """Insert a new in-progress attempt.

    Raises:
        ConflictError: the user already has an attempt for this season.
    """
    attempt = Attempt(
        user_id=user_id,
        season_id=season_id,
        total_questions=total_questions,
        started_at=started_at,
    )
    db.add(attempt)
    try:
        db.flush()
    except IntegrityError as exc:
        raise ConflictError(
            "An attempt already exists for this season", code="attempt_exists"
        ) from exc
    return attempt


def record_progress(
    db: Session,
    attempt_id: uuid.UUID,
    question_id: uuid.UUID,
    answer: str,
    is_correct: bool,
    answered_at: datetime,
) -> AttemptProgress:
    """Insert the answer for one question.

    Raises:
        ConflictError: the question was already answered in this attempt.
    """
    row = AttemptProgress(
        attempt_id=attempt_id,
        question_id=question_id,
        answer=answer,
        is_correct=is_correct,
        answered_at=answered_at,
    )
    db.add(row)
    try:
        db.flush()
    except IntegrityError as exc:
        raise ConflictError(
            "This question has already been answered", code="already_answered"
        ) from exc
    return row


def complete_attempt(
    db: Session,
    attempt_id: uuid.UUID,
    *,
    score: int,
    percentage: int,
    qualifies: bool,
    completed_at: datetime,
) -> None:
    """Seal the attempt.

    Raises:
        ConflictError: the attempt was already completed.
    """
    result = db.execute(
        update(Attempt)
        .where(Attempt.id == attempt_id, Attempt.completed.is_(False))
        .values(
            completed=True,
            completed_at=completed_at,
            score=score,
            percentage_score=percentage,
            qualifies_for_next_round=qualifies,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(
            "This attempt has already been completed", code="attempt_already_completed"
        )


def delete_attempt(db: Session, attempt_id: uuid.UUID) -> None:
    """Remove an attempt and its progress rows (admin reset)."""
    db.execute(delete(AttemptProgress).where(AttemptProgress.attempt_id == attempt_id))
    result = db.execute(
        delete(Attempt)
        .where(Attempt.id == attempt_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Attempt not found", code="attempt_not_found")


# ── Admin listing ─────────────────────────────────────────────────────────────


def list_attempts(
    db: Session,
    *,
    season_id: uuid.UUID | None = None,
    completed: bool | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[AttemptSummaryRead]:
    """Attempts newest first, with the owner's email and answered count."""
    answered = (
        select(AttemptProgress.attempt_id, func.count(AttemptProgress.id).label("answered"))
        .group_by(AttemptProgress.attempt_id)
        .subquery()
    )
    stmt = (
        select(Attempt, User.email, func.coalesce(answered.c.answered, 0))
        .join(User, User.id == Attempt.user_id)
        .outerjoin(answered, answered.c.attempt_id == Attempt.id)
        .order_by(Attempt.started_at.desc())
        .limit(limit)
        .offset(offset)
    )
    if season_id is not None:
        stmt = stmt.where(Attempt.season_id == season_id)
    if completed is not None:
        stmt = stmt.where(Attempt.completed.is_(completed))

    return [
        AttemptSummaryRead(
            id=attempt.id,
            user_id=attempt.user_id,
            season_id=attempt.season_id,
            email=email,
            score=attempt.score,
            total_questions=attempt.total_questions,
            answered_count=int(answered_count),
            percentage_score=attempt.percentage_score,
            completed=attempt.completed,
            qualifies_for_next_round=attempt.qualifies_for_next_round,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
        )
        for attempt, email, answered_count in db.execute(stmt).all()
    ]
