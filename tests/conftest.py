"""Shared pytest fixtures for the season quiz tests."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from seasonquiz.core.security import create_access_token
from seasonquiz.db import models  # noqa: F401  (registers tables on Base)
from seasonquiz.db.models import Question, RoleEnum, Season, User
from seasonquiz.db.session import Base, get_db
from seasonquiz.main import app
from seasonquiz.api.deps import require_submit_rate_limit


# Use an in-memory SQLite database for testing with static pool
SQLALCHEMY_TEST_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # Use StaticPool to keep connection alive
    echo=False,
)
TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db():
    """Fresh tables and session per test; the engine under test commits."""
    Base.metadata.create_all(bind=engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session):
    """FastAPI test client with overridden DB and rate-limit dependencies."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[require_submit_rate_limit] = lambda: None

    # Remove TrustedHostMiddleware for tests to allow 'testserver' host
    app.user_middleware = [m for m in app.user_middleware if "TrustedHost" not in str(m)]

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ── Factories ─────────────────────────────────────────────────────────────────


@pytest.fixture
def make_user(db: Session):
    counter = {"n": 0}

    def _make(role: RoleEnum = RoleEnum.STUDENT, **fields) -> User:
        counter["n"] += 1
        user = User(
            email=fields.pop("email", f"{role.value}{counter['n']}@example.com"),
            full_name=fields.pop("full_name", f"Test {role.value.title()} {counter['n']}"),
            role=role,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_season(db: Session):
    def _make(
        name: str = "Season",
        *,
        is_active: bool = True,
        is_qualification_round: bool = True,
        minimum_score_percentage: int | None = 50,
        starts_in: timedelta = timedelta(days=-1),
        lasts: timedelta = timedelta(days=2),
        **fields,
    ) -> Season:
        start = datetime.now(timezone.utc) + starts_in
        season = Season(
            name=name,
            start_at=start,
            end_at=start + lasts,
            is_active=is_active,
            is_qualification_round=is_qualification_round,
            minimum_score_percentage=minimum_score_percentage,
            **fields,
        )
        db.add(season)
        db.commit()
        db.refresh(season)
        return season

    return _make


@pytest.fixture
def make_questions(db: Session):
    """Create *count* questions; question i has options ``["right i", "wrong i"]``."""

    def _make(season: Season | None, count: int = 10) -> list[Question]:
        questions = [
            Question(
                text=f"Question {i}?",
                options=[f"right {i}", f"wrong {i}"],
                correct_answer=f"right {i}",
                season_id=season.id if season is not None else None,
                time_limit_seconds=30,
            )
            for i in range(count)
        ]
        db.add_all(questions)
        db.commit()
        for q in questions:
            db.refresh(q)
        return questions

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def answer_key(db: Session):
    """question id → correct option, read straight from storage."""

    def _key(question_ids) -> dict:
        ids = [uuid.UUID(str(qid)) for qid in question_ids]
        rows = db.query(Question).filter(Question.id.in_(ids)).all()
        return {q.id: q.correct_answer for q in rows}

    return _key
