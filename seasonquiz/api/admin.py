"""Admin routes: season scheduling, attempt oversight, disqualification."""

import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from seasonquiz.api.deps import get_attempt_engine, require_admin
from seasonquiz.db.models import User
from seasonquiz.db.session import get_db
from seasonquiz.schemas.attempt import AttemptSummaryRead
from seasonquiz.schemas.question import QuestionCreate, QuestionRead
from seasonquiz.schemas.season import (
    QualifiedUserRead,
    SeasonCreate,
    SeasonRead,
    SeasonStatsRead,
)
from seasonquiz.schemas.user import DisqualificationRead
from seasonquiz.services import attempt_store, question_bank, season_registry
from seasonquiz.services.attempt_engine import AttemptEngine

router = APIRouter()


# ── Seasons ───────────────────────────────────────────────────────────────────


@router.get("/seasons", response_model=list[SeasonStatsRead])
def list_seasons(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    """All seasons with question, attempt and qualified-user counts.

    Answers 503 ``seasons_unavailable`` instead of hanging when the
    aggregate query times out.
    """
    return season_registry.list_seasons_with_stats(db)


@router.post("/seasons", response_model=SeasonRead, status_code=status.HTTP_201_CREATED)
def create_season(
    body: SeasonCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return season_registry.create_season(db, body)


@router.put("/seasons/{season_id}/activate", response_model=SeasonRead)
def activate_season(
    season_id: uuid.UUID,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    """Make this the only active season."""
    return season_registry.activate(db, season_id)


@router.post(
    "/seasons/{season_id}/questions",
    response_model=QuestionRead,
    status_code=status.HTTP_201_CREATED,
)
def add_question(
    season_id: uuid.UUID,
    body: QuestionCreate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    season_registry.get_season(db, season_id)
    return question_bank.add_question(db, body, season_id)


@router.get("/seasons/{season_id}/qualified-users", response_model=list[QualifiedUserRead])
def list_qualified_users(
    season_id: uuid.UUID,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return season_registry.qualified_users(db, season_id)


# ── Attempts ──────────────────────────────────────────────────────────────────


@router.get("/attempts", response_model=list[AttemptSummaryRead])
def list_attempts(
    season_id: uuid.UUID | None = Query(None),
    completed: bool | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    """Attempts newest first, optionally filtered by season and state."""
    return attempt_store.list_attempts(
        db, season_id=season_id, completed=completed, limit=limit, offset=skip
    )


@router.delete("/attempts/{attempt_id}", status_code=status.HTTP_204_NO_CONTENT)
def reset_attempt(
    attempt_id: uuid.UUID,
    engine: AttemptEngine = Depends(get_attempt_engine),
    _admin: User = Depends(require_admin),
):
    """Delete an attempt and its answers so the user can retake the season."""
    engine.reset_attempt(attempt_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Users ─────────────────────────────────────────────────────────────────────


@router.post("/users/{user_id}/disqualify", response_model=DisqualificationRead)
def disqualify_user(
    user_id: uuid.UUID,
    engine: AttemptEngine = Depends(get_attempt_engine),
    _admin: User = Depends(require_admin),
):
    return engine.disqualify(user_id)


@router.post("/users/{user_id}/reinstate", response_model=DisqualificationRead)
def reinstate_user(
    user_id: uuid.UUID,
    engine: AttemptEngine = Depends(get_attempt_engine),
    _admin: User = Depends(require_admin),
):
    return engine.reinstate(user_id)
