"""Public season routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from seasonquiz.api.deps import get_current_user
from seasonquiz.db.models import User
from seasonquiz.db.session import get_db
from seasonquiz.schemas.season import SeasonKind, SeasonRead
from seasonquiz.services import season_registry

router = APIRouter()


@router.get("/active", response_model=SeasonRead | None)
def active_season(
    kind: SeasonKind = Query(SeasonKind.QUALIFICATION),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    """The season of *kind* that is active and open now, or ``null``."""
    return season_registry.get_eligible_season(db, kind)
