"""Integration tests for the admin endpoints.

Covers:
  GET    /api/admin/seasons
  POST   /api/admin/seasons
  PUT    /api/admin/seasons/{id}/activate
  POST   /api/admin/seasons/{id}/questions
  GET    /api/admin/seasons/{id}/qualified-users
  GET    /api/admin/attempts
  DELETE /api/admin/attempts/{id}
  POST   /api/admin/users/{id}/disqualify | reinstate
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from seasonquiz.db.models import RoleEnum, Season
from seasonquiz.services import season_registry


@pytest.fixture
def admin_headers(make_user, auth_headers):
    return auth_headers(make_user(RoleEnum.ADMIN))


def _finish_attempt(client: TestClient, headers: dict) -> str:
    started = client.post("/api/attempts/start", json={}, headers=headers).json()
    client.post(
        f"/api/attempts/{started['attempt_id']}/submissions",
        json={"kind": "batch", "answers": []},
        headers=headers,
    )
    return started["attempt_id"]


def test_students_are_forbidden(client: TestClient, make_user, auth_headers):
    resp = client.get("/api/admin/seasons", headers=auth_headers(make_user()))
    assert resp.status_code == 403


class TestSeasons:
    def test_list_with_stats(self, client: TestClient, admin_headers, make_season, make_questions):
        season = make_season("Listed")
        make_questions(season, count=3)

        resp = client.get("/api/admin/seasons", headers=admin_headers)

        assert resp.status_code == 200
        rows = resp.json()
        assert len(rows) == 1
        assert rows[0]["question_count"] == 3
        assert rows[0]["attempts_count"] == 0

    def test_listing_timeout_is_503(self, client: TestClient, admin_headers, make_season, monkeypatch):
        make_season()

        def _timeout(session):
            raise OperationalError("SET LOCAL", {}, Exception("statement timeout"))

        monkeypatch.setattr(season_registry, "_apply_statement_timeout", _timeout)
        resp = client.get("/api/admin/seasons", headers=admin_headers)

        assert resp.status_code == 503
        assert resp.json()["error_code"] == "seasons_unavailable"

    def test_create_and_activate(self, client: TestClient, db, admin_headers, make_season):
        old = make_season("Old", is_active=True)
        now = datetime.now(timezone.utc)
        created = client.post(
            "/api/admin/seasons",
            json={
                "name": "New",
                "start_at": now.isoformat(),
                "end_at": (now + timedelta(days=3)).isoformat(),
                "is_qualification_round": True,
                "minimum_score_percentage": 70,
            },
            headers=admin_headers,
        )
        assert created.status_code == 201, created.text
        new_id = created.json()["id"]
        assert created.json()["is_active"] is False

        resp = client.put(f"/api/admin/seasons/{new_id}/activate", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json()["is_active"] is True
        active = db.query(Season).filter(Season.is_active.is_(True)).all()
        assert [str(s.id) for s in active] == [new_id]
        db.refresh(old)
        assert old.is_active is False

    def test_create_rejects_inverted_window(self, client: TestClient, admin_headers):
        now = datetime.now(timezone.utc)
        resp = client.post(
            "/api/admin/seasons",
            json={"name": "Bad", "start_at": now.isoformat(), "end_at": now.isoformat()},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    def test_activate_unknown(self, client: TestClient, admin_headers):
        resp = client.put(f"/api/admin/seasons/{uuid.uuid4()}/activate", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "season_not_found"

    def test_add_question(self, client: TestClient, admin_headers, make_season):
        season = make_season()
        resp = client.post(
            f"/api/admin/seasons/{season.id}/questions",
            json={"text": "2 + 2?", "options": ["3", "4"], "correct_answer": "4"},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        assert "correct_answer" not in resp.json()

    def test_qualified_users(
        self, client: TestClient, admin_headers, make_user, auth_headers, make_season, make_questions
    ):
        season = make_season(minimum_score_percentage=0)
        make_questions(season, count=2)
        student = make_user()
        _finish_attempt(client, auth_headers(student))

        resp = client.get(f"/api/admin/seasons/{season.id}/qualified-users", headers=admin_headers)

        assert resp.status_code == 200
        assert [r["user_id"] for r in resp.json()] == [str(student.id)]


class TestAttempts:
    def test_list_and_reset(
        self, client: TestClient, admin_headers, make_user, auth_headers, make_season, make_questions
    ):
        make_questions(make_season(), count=2)
        student = make_user()
        attempt_id = _finish_attempt(client, auth_headers(student))

        listed = client.get("/api/admin/attempts", params={"completed": True}, headers=admin_headers)
        assert [a["id"] for a in listed.json()] == [attempt_id]
        assert listed.json()[0]["email"] == student.email

        resp = client.delete(f"/api/admin/attempts/{attempt_id}", headers=admin_headers)
        assert resp.status_code == 204
        assert client.get("/api/admin/attempts", headers=admin_headers).json() == []

        again = client.delete(f"/api/admin/attempts/{attempt_id}", headers=admin_headers)
        assert again.status_code == 404
        assert again.json()["error_code"] == "attempt_not_found"


class TestDisqualification:
    def test_disqualify_then_reinstate(
        self, client: TestClient, admin_headers, make_user, auth_headers, make_season, make_questions
    ):
        make_questions(make_season(), count=2)
        student = make_user()
        student_headers = auth_headers(student)

        resp = client.post(f"/api/admin/users/{student.id}/disqualify", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["is_disqualified"] is True

        blocked = client.post("/api/attempts/start", json={}, headers=student_headers)
        assert blocked.status_code == 403

        resp = client.post(f"/api/admin/users/{student.id}/reinstate", headers=admin_headers)
        assert resp.json() == {
            "user_id": str(student.id),
            "is_disqualified": False,
            "disqualified_at": None,
        }
        started = client.post("/api/attempts/start", json={}, headers=student_headers)
        assert started.json()["status"] == "started"

    def test_unknown_user(self, client: TestClient, admin_headers):
        resp = client.post(f"/api/admin/users/{uuid.uuid4()}/disqualify", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "user_not_found"
