"""Season registry: eligibility lookups and the single-active-season rule.

Activation is one transaction containing one set-based UPDATE::

    UPDATE seasons SET is_active = (id = :target)

so there is no window in which a concurrent reader sees two active seasons,
or none.  Every writer of ``is_active`` (activation and creating an active
season) first takes the same transaction-scoped advisory lock, so writers run
one after another and never interleave their UPDATE with another's INSERT.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import and_, case, distinct, func, select, text, update
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from seasonquiz.config import settings
from seasonquiz.core.errors import NotFoundError, UnavailableError, ValidationError
from seasonquiz.db.models import Attempt, Question, Season, User
from seasonquiz.schemas.season import QualifiedUserRead, SeasonCreate, SeasonKind, SeasonStatsRead

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _eligible_filters(now: datetime) -> list:
    return [Season.is_active.is_(True), Season.start_at <= now, Season.end_at >= now]


# ── Reads ─────────────────────────────────────────────────────────────────────


def get_eligible_season(
    db: Session, kind: SeasonKind, now: datetime | None = None
) -> Season | None:
    """Return the active season of *kind* whose window contains *now*."""
    now = now or _utcnow()
    stmt = (
        select(Season)
        .where(
            *_eligible_filters(now),
            Season.is_qualification_round.is_(kind == SeasonKind.QUALIFICATION),
        )
        .order_by(Season.start_at.desc())
        .limit(1)
    )
    return db.scalars(stmt).first()


def get_season_if_eligible(
    db: Session, season_id: uuid.UUID, now: datetime | None = None
) -> Season | None:
    """Return season *season_id* only if it is active and currently open."""
    now = now or _utcnow()
    stmt = select(Season).where(Season.id == season_id, *_eligible_filters(now))
    return db.scalars(stmt).first()


def get_season(db: Session, season_id: uuid.UUID) -> Season:
    season = db.get(Season, season_id)
    if season is None:
        raise NotFoundError("Season not found", code="season_not_found")
    return season


# ── Writes ────────────────────────────────────────────────────────────────────


_ACTIVE_SEASON_LOCK_ID = 0x5EA5_0001


def _lock_active_flag(db: Session) -> None:
    """Serialise writers of ``seasons.is_active`` until the transaction ends."""
    if db.get_bind().dialect.name == "postgresql":
        db.execute(
            text("SELECT pg_advisory_xact_lock(:key)"), {"key": _ACTIVE_SEASON_LOCK_ID}
        )


def activate(db: Session, season_id: uuid.UUID) -> Season:
    """Make *season_id* the only active season, atomically."""
    try:
        _lock_active_flag(db)
        season = db.get(Season, season_id)
        if season is None:
            raise NotFoundError("Season not found", code="season_not_found")

        db.execute(
            update(Season)
            .values(is_active=case((Season.id == season_id, True), else_=False))
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(season)
    logger.info("Activated season %s (%s)", season.id, season.name)
    return season


def create_season(db: Session, data: SeasonCreate) -> Season:
    """Insert a season; an active one deactivates all others in the same transaction."""
    if data.start_at >= data.end_at:
        raise ValidationError("start_at must be before end_at", code="invalid_season")
    try:
        if data.is_active:
            _lock_active_flag(db)
            db.execute(
                update(Season)
                .where(Season.is_active.is_(True))
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
        season = Season(**data.model_dump())
        db.add(season)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(season)
    logger.info("Created season %s (%s)", season.id, season.name)
    return season


# ── Aggregates ────────────────────────────────────────────────────────────────


def _apply_statement_timeout(db: Session) -> None:
    """Bound the current transaction's statements on PostgreSQL."""
    if db.get_bind().dialect.name == "postgresql":
        # SET does not accept bind parameters
        db.execute(text(f"SET LOCAL statement_timeout = {int(settings.SEASON_QUERY_TIMEOUT_MS)}"))


def list_seasons_with_stats(db: Session) -> list[SeasonStatsRead]:
    """All seasons with question / attempt / qualified-user counters.

    Raises:
        UnavailableError: if the query times out or storage is unreachable.
    """
    stmt = (
        select(
            Season,
            func.count(distinct(Question.id)).label("question_count"),
            func.count(distinct(Attempt.id)).label("attempts_count"),
            func.count(
                distinct(case((Attempt.qualifies_for_next_round.is_(True), Attempt.user_id)))
            ).label("qualified_users_count"),
        )
        .outerjoin(Question, Question.season_id == Season.id)
        .outerjoin(Attempt, Attempt.season_id == Season.id)
        .group_by(Season.id)
        .order_by(Season.start_at.desc())
    )
    try:
        _apply_statement_timeout(db)
        rows = db.execute(stmt).all()
    except (OperationalError, PoolTimeoutError) as exc:
        db.rollback()
        logger.warning("Season listing failed: %s", exc)
        raise UnavailableError(
            "Seasons service temporarily unavailable", code="seasons_unavailable"
        ) from exc

    return [
        SeasonStatsRead.model_validate(season).model_copy(
            update={
                "question_count": question_count,
                "attempts_count": attempts_count,
                "qualified_users_count": qualified_users_count,
            }
        )
        for season, question_count, attempts_count, qualified_users_count in rows
    ]


def qualified_users(db: Session, season_id: uuid.UUID) -> list[QualifiedUserRead]:
    """Users whose completed attempt in *season_id* met the threshold."""
    get_season(db, season_id)
    rows = db.execute(
        select(User, Attempt)
        .join(Attempt, Attempt.user_id == User.id)
        .where(
            and_(
                Attempt.season_id == season_id,
                Attempt.completed.is_(True),
                Attempt.qualifies_for_next_round.is_(True),
            )
        )
        .order_by(Attempt.score.desc(), Attempt.completed_at.asc())
    ).all()
    return [
        QualifiedUserRead(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            score=attempt.score,
            percentage_score=attempt.percentage_score,
            completed_at=attempt.completed_at,
        )
        for user, attempt in rows
    ]
