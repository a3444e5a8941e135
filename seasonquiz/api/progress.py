"""Progress route: the caller's attempt and answered questions."""

import uuid

from fastapi import APIRouter, Depends, Query

from seasonquiz.api.deps import get_attempt_engine, get_current_user
from seasonquiz.db.models import User
from seasonquiz.schemas.progress import ProgressRead
from seasonquiz.services.attempt_engine import AttemptEngine

router = APIRouter()


@router.get("", response_model=ProgressRead)
def get_progress(
    season_id: uuid.UUID | None = Query(None, description="Defaults to the latest attempt"),
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_attempt_engine),
):
    """Return the caller's attempt progress.  Correct answers are never included."""
    return engine.get_progress(current_user.id, season_id)
