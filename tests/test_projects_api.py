from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agenda.api.routes import project as project_routes
from agenda.core.context import get_user_id
from agenda.db.deps import get_db
from agenda.db.models.agenda_block import AgendaBlock
from agenda.db.models.agent_action_log import AgentActionLog
from agenda.db.models.project import Project
from agenda.db.models.user import User
from agenda.main import app


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    Project.__table__.create(bind=engine)
    AgendaBlock.__table__.create(bind=engine)
    AgentActionLog.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def _project_payload(user_id: UUID, **overrides) -> dict:
    payload = {
        "user_id": str(user_id),
        "title": "  Tax return  ",
        "category": "famiglia",
        "valence": 4,
        "est_hours": 2.5,
        "priority": 5,
        "due_date": "2026-04-30T17:00:00Z",
    }
    payload.update(overrides)
    return payload


def test_create_and_list_projects(client):
    test_client, session_factory = client
    user_id = uuid4()

    resp = test_client.post("/projects", json=_project_payload(user_id))
    assert resp.status_code == 201
    body = resp.json()
    assert body["title"] == "Tax return"
    assert body["est_hours"] == 2.5

    other_user = uuid4()
    test_client.post("/projects", json=_project_payload(other_user, title="Other"))

    listed = test_client.get("/projects", params={"user_id": str(user_id)})
    assert listed.status_code == 200
    assert [item["id"] for item in listed.json()] == [body["id"]]

    with session_factory() as db:
        assert db.get(User, user_id) is not None
        logs = db.query(AgentActionLog).filter(AgentActionLog.user_id == user_id).all()
        assert [log.action_type for log in logs] == ["project_created"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"valence": 0},
        {"valence": 6},
        {"priority": 9},
        {"est_hours": 0},
        {"est_hours": 0.05},
        {"title": "   "},
        {"category": ""},
        {"due_date": "not-a-date"},
    ],
)
def test_create_project_validation(client, overrides):
    test_client, _ = client

    resp = test_client.post("/projects", json=_project_payload(uuid4(), **overrides))

    assert resp.status_code == 422


def test_get_project_ownership(client):
    test_client, _ = client
    user_id = uuid4()
    project_id = test_client.post("/projects", json=_project_payload(user_id)).json()["id"]

    assert test_client.get(f"/projects/{project_id}", params={"user_id": str(user_id)}).status_code == 200
    assert test_client.get(f"/projects/{project_id}", params={"user_id": str(uuid4())}).status_code == 403
    assert test_client.get(f"/projects/{uuid4()}", params={"user_id": str(user_id)}).status_code == 404


def test_patch_project_updates_only_given_fields(client):
    test_client, _ = client
    user_id = uuid4()
    created = test_client.post("/projects", json=_project_payload(user_id)).json()

    resp = test_client.patch(
        f"/projects/{created['id']}",
        json={"user_id": str(user_id), "priority": 2, "title": " Taxes "},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["priority"] == 2
    assert body["title"] == "Taxes"
    assert body["valence"] == created["valence"]
    assert body["est_hours"] == created["est_hours"]

    invalid = test_client.patch(f"/projects/{created['id']}", json={"user_id": str(user_id), "valence": 7})
    assert invalid.status_code == 422

    foreign = test_client.patch(f"/projects/{created['id']}", json={"user_id": str(uuid4()), "priority": 1})
    assert foreign.status_code == 403


def test_body_routes_bind_user_to_logging_context(client, monkeypatch):
    test_client, _ = client
    user_id = uuid4()
    seen = []
    monkeypatch.setattr(
        project_routes, "log_metric", lambda name, value, metadata=None: seen.append((name, get_user_id()))
    )

    created = test_client.post("/projects", json=_project_payload(user_id)).json()
    test_client.patch(f"/projects/{created['id']}", json={"user_id": str(user_id), "priority": 1})

    assert seen == [("project.create.success", str(user_id)), ("project.update.fields", str(user_id))]


def test_delete_project(client):
    test_client, session_factory = client
    user_id = uuid4()
    project_id = test_client.post("/projects", json=_project_payload(user_id)).json()["id"]

    assert test_client.delete(f"/projects/{project_id}", params={"user_id": str(uuid4())}).status_code == 403
    resp = test_client.delete(f"/projects/{project_id}", params={"user_id": str(user_id)})
    assert resp.status_code == 204
    assert test_client.delete(f"/projects/{project_id}", params={"user_id": str(user_id)}).status_code == 404

    with session_factory() as db:
        assert db.get(Project, UUID(project_id)) is None
