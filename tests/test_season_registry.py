"""Tests for season eligibility, activation and the admin aggregates."""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.exc import OperationalError

from seasonquiz.core.errors import NotFoundError, UnavailableError, ValidationError
from seasonquiz.db.models import Attempt, Season
from seasonquiz.schemas.season import SeasonCreate, SeasonKind
from seasonquiz.services import season_registry


def _active_ids(db) -> set:
    return set(db.scalars(select(Season.id).where(Season.is_active.is_(True))))


class TestEligibility:
    def test_returns_open_active_season_of_kind(self, db, make_season):
        qual = make_season("Qualifier", is_qualification_round=True)
        found = season_registry.get_eligible_season(db, SeasonKind.QUALIFICATION)
        assert found is not None and found.id == qual.id

    def test_wrong_kind_is_not_eligible(self, db, make_season):
        make_season("Qualifier", is_qualification_round=True)
        assert season_registry.get_eligible_season(db, SeasonKind.REGULAR) is None

    def test_inactive_season_is_not_eligible(self, db, make_season):
        make_season(is_active=False)
        assert season_registry.get_eligible_season(db, SeasonKind.QUALIFICATION) is None

    def test_future_and_past_seasons_are_not_eligible(self, db, make_season):
        make_season("Future", starts_in=timedelta(days=1))
        assert season_registry.get_eligible_season(db, SeasonKind.QUALIFICATION) is None

        db.query(Season).delete()
        db.commit()
        make_season("Past", starts_in=timedelta(days=-10), lasts=timedelta(days=2))
        assert season_registry.get_eligible_season(db, SeasonKind.QUALIFICATION) is None

    def test_explicit_now_is_respected(self, db, make_season):
        season = make_season()
        later = datetime.now(timezone.utc) + timedelta(days=5)
        assert season_registry.get_eligible_season(db, SeasonKind.QUALIFICATION, later) is None
        assert season_registry.get_season_if_eligible(db, season.id, later) is None
        assert season_registry.get_season_if_eligible(db, season.id).id == season.id

    def test_get_season_missing_raises(self, db):
        with pytest.raises(NotFoundError) as exc:
            season_registry.get_season(db, uuid.uuid4())
        assert exc.value.code == "season_not_found"


class TestActivate:
    def test_scenario_e_switches_active_season(self, db, make_season):
        a = make_season("A", is_active=True)
        b = make_season("B", is_active=False)

        activated = season_registry.activate(db, b.id)

        assert activated.id == b.id and activated.is_active is True
        assert _active_ids(db) == {b.id}
        db.refresh(a)
        assert a.is_active is False

    def test_activation_is_one_update_statement(self, db, make_season):
        make_season("A", is_active=True)
        b = make_season("B", is_active=False)
        statements = []

        def _capture(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        bind = db.get_bind()
        event.listen(bind, "before_cursor_execute", _capture)
        try:
            season_registry.activate(db, b.id)
        finally:
            event.remove(bind, "before_cursor_execute", _capture)

        updates = [s for s in statements if s.lstrip().upper().startswith("UPDATE SEASONS")]
        assert len(updates) == 1

    def test_repeated_activation_keeps_exactly_one_active(self, db, make_season):
        seasons = [make_season(f"S{i}", is_active=False) for i in range(4)]
        for target in [seasons[2], seasons[0], seasons[0], seasons[3], seasons[1]]:
            season_registry.activate(db, target.id)
            assert _active_ids(db) == {target.id}

    def test_unknown_season_changes_nothing(self, db, make_season):
        a = make_season("A", is_active=True)
        with pytest.raises(NotFoundError):
            season_registry.activate(db, uuid.uuid4())
        assert _active_ids(db) == {a.id}


class TestCreateSeason:
    def _payload(self, **overrides) -> SeasonCreate:
        now = datetime.now(timezone.utc)
        data = {
            "name": "Spring",
            "start_at": now,
            "end_at": now + timedelta(days=7),
            "is_active": True,
            "minimum_score_percentage": 60,
        }
        data.update(overrides)
        return SeasonCreate(**data)

    def test_active_season_deactivates_others(self, db, make_season):
        old = make_season("Old", is_active=True)
        created = season_registry.create_season(db, self._payload())
        assert _active_ids(db) == {created.id}
        db.refresh(old)
        assert old.is_active is False

    def test_inactive_season_leaves_others(self, db, make_season):
        old = make_season("Old", is_active=True)
        season_registry.create_season(db, self._payload(is_active=False))
        assert _active_ids(db) == {old.id}

    def test_inverted_window_is_rejected(self, db):
        now = datetime.now(timezone.utc)
        payload = SeasonCreate.model_construct(
            name="Bad", start_at=now, end_at=now - timedelta(hours=1), is_active=False
        )
        with pytest.raises(ValidationError) as exc:
            season_registry.create_season(db, payload)
        assert exc.value.code == "invalid_season"


class TestSeasonStats:
    def test_counts_questions_attempts_and_qualified_users(
        self, db, make_season, make_user, make_questions
    ):
        season = make_season("Counted")
        make_season("Empty", is_active=False)
        make_questions(season, count=3)
        passed, failed = make_user(), make_user()
        now = datetime.now(timezone.utc)
        db.add_all([
            Attempt(user_id=passed.id, season_id=season.id, total_questions=3, score=3,
                    percentage_score=100, completed=True, qualifies_for_next_round=True,
                    started_at=now, completed_at=now),
            Attempt(user_id=failed.id, season_id=season.id, total_questions=3, score=0,
                    percentage_score=0, completed=True, qualifies_for_next_round=False,
                    started_at=now, completed_at=now),
        ])
        db.commit()

        stats = {s.name: s for s in season_registry.list_seasons_with_stats(db)}

        assert stats["Counted"].question_count == 3
        assert stats["Counted"].attempts_count == 2
        assert stats["Counted"].qualified_users_count == 1
        assert stats["Empty"].question_count == 0
        assert stats["Empty"].attempts_count == 0

    def test_timeout_degrades_to_unavailable(self, db, make_season, monkeypatch):
        make_season()

        def _timeout(session):
            raise OperationalError(
                "SET LOCAL statement_timeout", {}, Exception("canceling statement due to statement timeout")
            )

        monkeypatch.setattr(season_registry, "_apply_statement_timeout", _timeout)
        with pytest.raises(UnavailableError) as exc:
            season_registry.list_seasons_with_stats(db)
        assert exc.value.code == "seasons_unavailable"
        assert exc.value.status_code == 503

    def test_qualified_users_ordered_by_score(self, db, make_season, make_user):
        season = make_season()
        first, second, failed = make_user(), make_user(), make_user()
        now = datetime.now(timezone.utc)
        for user, score, qualifies in [(second, 6, True), (first, 9, True), (failed, 2, False)]:
            db.add(Attempt(user_id=user.id, season_id=season.id, total_questions=10,
                           score=score, percentage_score=score * 10, completed=True,
                           qualifies_for_next_round=qualifies, started_at=now, completed_at=now))
        db.commit()

        rows = season_registry.qualified_users(db, season.id)

        assert [r.user_id for r in rows] == [first.id, second.id]
        assert rows[0].percentage_score == 90
        assert db.scalar(select(func.count(Attempt.id))) == 3


class TestActiveFlagWriters:
    def _payload(self, name: str, is_active: bool = True) -> SeasonCreate:
        now = datetime.now(timezone.utc)
        return SeasonCreate(
            name=name, start_at=now, end_at=now + timedelta(days=7), is_active=is_active
        )

    def test_active_create_and_activate_leave_one_active(self, db, make_season):
        existing = make_season("Existing", is_active=False)

        created = season_registry.create_season(db, self._payload("Created"))
        assert _active_ids(db) == {created.id}

        season_registry.activate(db, existing.id)
        assert _active_ids(db) == {existing.id}

        latest = season_registry.create_season(db, self._payload("Latest"))
        assert _active_ids(db) == {latest.id}

    def test_every_active_flag_writer_takes_the_lock(self, db, make_season, monkeypatch):
        calls = []
        monkeypatch.setattr(season_registry, "_lock_active_flag", lambda session: calls.append(session))
        target = make_season("Target", is_active=False)

        season_registry.activate(db, target.id)
        season_registry.create_season(db, self._payload("Active"))
        season_registry.create_season(db, self._payload("Draft", is_active=False))

        assert calls == [db, db]

    def test_lock_is_a_postgres_advisory_xact_lock(self):
        session = MagicMock()
        session.get_bind.return_value.dialect.name = "postgresql"

        season_registry._lock_active_flag(session)

        stmt, params = session.execute.call_args.args
        assert "pg_advisory_xact_lock" in str(stmt)
        assert params == {"key": season_registry._ACTIVE_SEASON_LOCK_ID}

    def test_lock_is_skipped_on_sqlite(self):
        session = MagicMock()
        session.get_bind.return_value.dialect.name = "sqlite"

        season_registry._lock_active_flag(session)

        session.execute.assert_not_called()
