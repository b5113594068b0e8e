"""HTTP surface: header-based actor resolution and error-code mapping."""

import pytest
from fastapi.testclient import TestClient

from knowledge_base.db.session import get_db
from knowledge_base.main import app
from knowledge_base.models.user import UserRole
from knowledge_base.services.moderation_service import moderation_service

from conftest import RecordingDispatcher, make_user


@pytest.fixture
def actors(session_factory):
    session = session_factory()
    try:
        return {
            "admin": make_user(session, "admin", UserRole.admin, email="admin@example.com"),
            "supervisor": make_user(session, "qcsupervisor1", UserRole.supervisor),
            "u1": make_user(session, "u1", UserRole.user),
            "u2": make_user(session, "u2", UserRole.user),
        }
    finally:
        session.close()


@pytest.fixture
def client(session_factory, actors, monkeypatch):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(moderation_service, "notifier", RecordingDispatcher())
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def as_(actors, name):
    return {"X-User-Id": actors[name].id}


def _raise(client, actors, who="u1", title="Scanner jam error 42", category="ibml"):
    return client.post(
        "/api/questions/",
        json={"title": title, "description": "Feeder stops", "category": category},
        headers=as_(actors, who),
    )


class TestActorResolution:
    def test_missing_header(self, client):
        assert client.get("/api/questions/").status_code == 401

    def test_unknown_user(self, client):
        response = client.get("/api/questions/", headers={"X-User-Id": "ghost"})
        assert response.status_code == 401

    def test_me(self, client, actors):
        response = client.get("/api/users/me", headers=as_(actors, "supervisor"))
        assert response.status_code == 200
        assert response.json()["role"] == "supervisor"

    def test_user_listing_is_admin_only(self, client, actors):
        assert client.get("/api/users/", headers=as_(actors, "u1")).status_code == 403
        response = client.get("/api/users/", headers=as_(actors, "admin"))
        assert response.json()["total"] == 4


class TestQuestionRoutes:
    def test_raise_question(self, client, actors):
        response = _raise(client, actors)
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["priority"] == "medium"
        assert moderation_service.notifier.new_questions

    def test_validation_error_is_422_with_code(self, client, actors):
        response = client.post(
            "/api/questions/",
            json={"title": " ", "description": "d", "category": "ibml"},
            headers=as_(actors, "u1"),
        )
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_overlong_title_is_422_with_code(self, client, actors):
        response = _raise(client, actors, title="x" * 501)
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_throttle_is_429(self, client, actors):
        assert _raise(client, actors, "supervisor").status_code == 201
        response = _raise(client, actors, "supervisor", title="another")
        assert response.status_code == 429
        assert response.json()["code"] == "throttle_violation"

    def test_get_counts_views(self, client, actors):
        qid = _raise(client, actors, "admin").json()["id"]
        client.get(f"/api/questions/{qid}", headers=as_(actors, "u1"))
        body = client.get(f"/api/questions/{qid}", headers=as_(actors, "u2")).json()
        assert body["views"] == 2
        assert body["author"]["username"] == "admin"

    def test_get_missing_question(self, client, actors):
        response = client.get("/api/questions/missing", headers=as_(actors, "u1"))
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_list_with_filters(self, client, actors):
        _raise(client, actors, "admin", title="Scanner jam error 42", category="ibml")
        _raise(client, actors, "admin", title="Jam on feed tray", category="softtrac")

        response = client.get(
            "/api/questions/", params={"category": "softtrac", "sortBy": "trending"},
            headers=as_(actors, "u1"),
        )
        assert [q["title"] for q in response.json()] == ["Jam on feed tray"]

    def test_bad_status_is_400(self, client, actors):
        qid = _raise(client, actors).json()["id"]
        response = client.patch(
            f"/api/questions/{qid}/status", json={"status": "archived"},
            headers=as_(actors, "admin"),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_status"

    def test_delete_flow(self, client, actors):
        qid = _raise(client, actors).json()["id"]
        client.post(
            f"/api/questions/{qid}/answers", json={"answer_text": "Clean the rollers"},
            headers=as_(actors, "admin"),
        )

        refused = client.delete(f"/api/questions/{qid}", headers=as_(actors, "admin"))
        assert refused.status_code == 409
        assert refused.json()["code"] == "invalid_state"

        client.patch(
            f"/api/questions/{qid}/status", json={"status": "rejected"},
            headers=as_(actors, "supervisor"),
        )
        deleted = client.delete(f"/api/questions/{qid}", headers=as_(actors, "admin"))
        assert deleted.status_code == 200
        assert deleted.json()["detail"] == {"answers_removed": 1}
        assert client.get(f"/api/questions/{qid}", headers=as_(actors, "admin")).status_code == 404


class TestAnswerRoutes:
    def test_user_cannot_answer(self, client, actors):
        qid = _raise(client, actors, "admin").json()["id"]
        response = client.post(
            f"/api/questions/{qid}/answers", json={"answer_text": "reboot"},
            headers=as_(actors, "u1"),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    def test_final_question_is_locked(self, client, actors):
        response = client.post(
            "/api/questions/final",
            json={
                "title": "Jam on feed tray",
                "description": "Tray 1 misfeeds",
                "category": "softtrac",
                "answer_text": "Realign the guide",
            },
            headers=as_(actors, "admin"),
        )
        assert response.status_code == 201
        qid = response.json()["question"]["id"]
        assert response.json()["question"]["is_final"] is True

        locked = client.post(
            f"/api/questions/{qid}/answers", json={"answer_text": "also this"},
            headers=as_(actors, "admin"),
        )
        assert locked.status_code == 409
        assert locked.json()["code"] == "locked"

    def test_answer_moderation(self, client, actors):
        qid = _raise(client, actors, "admin").json()["id"]
        aid = client.post(
            f"/api/questions/{qid}/answers", json={"answer_text": "Clean the rollers"},
            headers=as_(actors, "supervisor"),
        ).json()["id"]

        path = f"/api/answers/{aid}/status"
        assert client.patch(path, json={"status": "approved"}, headers=as_(actors, "supervisor")).status_code == 403
        approved = client.patch(path, json={"status": "approved"}, headers=as_(actors, "admin"))
        assert approved.json()["status"] == "approved"

        answers = client.get(
            f"/api/questions/{qid}/answers", params={"status": "approved"},
            headers=as_(actors, "u1"),
        ).json()
        assert [a["id"] for a in answers] == [aid]
        assert answers[0]["author"]["username"] == "qcsupervisor1"


class TestActivityAndDashboards:
    def test_activity_is_owner_only(self, client, actors):
        _raise(client, actors, "u1")
        u1 = actors["u1"].id

        assert client.get(f"/api/activity/{u1}", headers=as_(actors, "u2")).status_code == 403
        own = client.get(f"/api/activity/{u1}", headers=as_(actors, "u1")).json()
        assert [item["type"] for item in own] == ["question"]

    def test_activity_log_for_admin(self, client, actors):
        _raise(client, actors, "u1")
        response = client.get(
            "/api/activity/log", params={"user_id": actors["u1"].id},
            headers=as_(actors, "admin"),
        )
        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert client.get("/api/activity/log", headers=as_(actors, "u1")).status_code == 403

    def test_stats(self, client, actors):
        _raise(client, actors, "u1")
        response = client.get("/api/stats", headers=as_(actors, "admin"))
        assert response.status_code == 200
        assert response.json()["total_questions"] == 1
        assert response.json()["pending_approvals"] == 1

    def test_analytics_is_admin_only(self, client, actors):
        assert client.get("/api/analytics", headers=as_(actors, "supervisor")).status_code == 403
        response = client.get("/api/analytics", headers=as_(actors, "admin"))
        assert set(response.json()) >= {"questions_by_category", "trending_questions"}
