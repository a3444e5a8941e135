"""Current-user routes: identity, qualification status, self opt-out."""

from fastapi import APIRouter, Depends

from seasonquiz.api.deps import get_attempt_engine, get_current_user
from seasonquiz.config import settings
from seasonquiz.core.errors import ForbiddenError
from seasonquiz.db.models import User
from seasonquiz.schemas.progress import QualificationStatusRead
from seasonquiz.schemas.user import DisqualificationRead, UserRead
from seasonquiz.services.attempt_engine import AttemptEngine

router = APIRouter()


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return current_user


@router.get("/me/qualification", response_model=QualificationStatusRead)
def my_qualification(
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_attempt_engine),
):
    return engine.qualification_status(current_user.id)


@router.post("/me/disqualify", response_model=DisqualificationRead)
def disqualify_self(
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_attempt_engine),
):
    """Withdraw from the competition.  Only enabled with ALLOW_SELF_DISQUALIFY."""
    if not settings.ALLOW_SELF_DISQUALIFY:
        raise ForbiddenError(
            "Self-disqualification is disabled", code="self_disqualify_disabled"
        )
    return engine.disqualify(current_user.id)
