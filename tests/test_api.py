"""End-to-end tests of the HTTP API over an in-memory database."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from worklog.core.config import settings
from worklog.db.session import Base, get_db, make_engine
from worklog.main import create_app


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "MEDIA_DIR", tmp_path)
    engine = make_engine("sqlite://", poolclass=StaticPool)
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app = create_app(init_db=False)
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


ANNA = {"X-User-Id": "anna"}


def _day_with_one_task(client):
    resp = client.post("/api/v1/workdays/start", json={"start_iso": "2024-05-02T08:00:00"}, headers=ANNA)
    assert resp.status_code == 201
    resp = client.post("/api/v1/tasks", json={"start_iso": "2024-05-02T10:00:00", "title": "Desk"}, headers=ANNA)
    assert resp.status_code == 201
    return resp.json()


def test_health_and_security_headers(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Request-ID"]


def test_workday_lifecycle(client):
    task = _day_with_one_task(client)

    resp = client.post("/api/v1/workdays/start", json={}, headers=ANNA)
    assert resp.status_code == 409
    assert resp.json()["code"] == "conflict"

    resp = client.post("/api/v1/workdays/end", json={"end_iso": "2024-05-02T19:00:00"}, headers=ANNA)
    assert resp.status_code == 409

    resp = client.post(
        f"/api/v1/tasks/{task['id']}/finish",
        json={"title": "Desk #setup", "note": "Monitor arm", "end_iso": "2024-05-02T11:30:00"},
        headers=ANNA,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["discarded"] is False
    assert body["task"]["tags"] == ["setup"]
    assert body["task"]["status"] == "finished"
    assert body["task"]["duration_minutes"] == 90

    resp = client.post("/api/v1/workdays/end", json={"end_iso": "2024-05-02T19:00:00"}, headers=ANNA)
    assert resp.status_code == 200
    workday = resp.json()
    assert workday["is_active"] is False
    assert workday["base_hours"] == 9.0
    assert workday["overtime_hours"] == 2.0

    assert client.get("/api/v1/workdays/active", headers=ANNA).json() is None
    listed = client.get("/api/v1/workdays", params={"from": "2024-05-01", "to": "2024-05-31"}, headers=ANNA)
    assert [w["id"] for w in listed.json()] == [workday["id"]]
    assert listed.headers["Cache-Control"] == "private, no-store"

    # Users never see each other's records.
    assert client.get(f"/api/v1/workdays/{workday['id']}", headers={"X-User-Id": "janis"}).status_code == 404


def test_blank_task_is_discarded(client):
    task = _day_with_one_task(client)
    resp = client.post(f"/api/v1/tasks/{task['id']}/finish", json={"title": "", "note": " "}, headers=ANNA)
    assert resp.json() == {"discarded": True, "task": None}
    assert client.get(f"/api/v1/tasks/{task['id']}", headers=ANNA).status_code == 404


def test_half_filled_task_is_rejected(client):
    task = _day_with_one_task(client)
    resp = client.post(f"/api/v1/tasks/{task['id']}/finish", json={"title": "Desk", "note": ""}, headers=ANNA)
    assert resp.status_code == 422
    assert resp.json()["code"] == "invalid"


def test_task_without_workday_conflicts(client):
    resp = client.post("/api/v1/tasks", json={"start_iso": "2024-05-02T10:00:00"}, headers=ANNA)
    assert resp.status_code == 409
    resp = client.post("/api/v1/tasks", json={"start_iso": "2024-05-02T22:00:00", "is_call": True}, headers=ANNA)
    assert resp.status_code == 201
    assert resp.json()["session_id"] is None
    open_calls = client.get("/api/v1/tasks/open", params={"is_call": True}, headers=ANNA).json()
    assert len(open_calls) == 1


def test_image_upload_and_download(client):
    task = _day_with_one_task(client)
    url = f"/api/v1/tasks/{task['id']}/images"

    resp = client.post(url, files={"file": ("notes.txt", b"text", "text/plain")}, headers=ANNA)
    assert resp.status_code == 415

    resp = client.post(url, files={"file": ("shot.jpg", b"\xff\xd8\xffdata", "image/jpeg")}, headers=ANNA)
    assert resp.status_code == 201
    image = resp.json()
    assert image["filename"] == "shot.jpg"
    assert image["size"] == 7

    download = client.get(image["url"], headers=ANNA)
    assert download.status_code == 200
    assert download.content == b"\xff\xd8\xffdata"
    assert download.headers["content-type"] == "image/jpeg"

    for _ in range(settings.MAX_TASK_IMAGES - 1):
        assert client.post(url, files={"file": ("more.png", b"png", "image/png")}, headers=ANNA).status_code == 201
    resp = client.post(url, files={"file": ("late.png", b"png", "image/png")}, headers=ANNA)
    assert resp.status_code == 409

    assert client.delete(image["url"], headers=ANNA).json() == {"status": "deleted"}
    assert len(client.get(url, headers=ANNA).json()) == settings.MAX_TASK_IMAGES - 1


def test_summary_endpoints(client):
    task = _day_with_one_task(client)
    client.post(
        f"/api/v1/tasks/{task['id']}/finish",
        json={"title": "Desk", "note": "#setup", "end_iso": "2024-05-02T11:30:00"},
        headers=ANNA,
    )
    client.post("/api/v1/workdays/end", json={"end_iso": "2024-05-02T19:00:00"}, headers=ANNA)

    months = client.get("/api/v1/summary/months", headers=ANNA).json()
    assert [m["key"] for m in months["months"]] == ["2024-05"]

    view = client.get("/api/v1/summary/2024/5", headers=ANNA).json()
    assert view["totals"]["grand_total"] == 11.0
    assert view["totals"]["task_hours"] == 1.5
    assert view["days"]["2024-05-02"]["base_hours"] == 9.0
    assert view["calendar"][0][3]["has_overtime"] is True

    rows = client.get("/api/v1/summary/monthly", params={"from_month": "2024-04", "to_month": "2024-06"}, headers=ANNA)
    assert [r["month"] for r in rows.json()] == ["2024-05"]
    assert rows.json()[0]["display"]["grand_total"] == "11h 0m"

    bad = client.get("/api/v1/summary/monthly", params={"from_month": "2024-13"}, headers=ANNA)
    assert bad.status_code == 422

    detail = client.get("/api/v1/summary/days/2024-05-02", headers=ANNA).json()
    assert [t["id"] for t in detail["tasks"]] == [task["id"]]
    assert detail["hours"]["task_hours"] == 1.5

    tags = client.get("/api/v1/tags", headers=ANNA).json()
    assert [(t["name"], t["usage_count"]) for t in tags] == [("setup", 1)]
    extracted = client.get("/api/v1/tags/extract", params={"text": "#a b #c"}, headers=ANNA).json()
    assert extracted == {"tags": ["a", "c"]}


def test_api_key_and_jwt_flow(client, monkeypatch):
    assert client.post("/api/v1/auth/token", json={"apiKey": "x", "userId": "anna"}).status_code == 400

    monkeypatch.setattr(settings, "API_KEY", "secret")
    assert client.get("/api/v1/workdays", headers=ANNA).status_code == 401
    assert client.get("/api/v1/workdays", headers={"X-API-Key": "nope"}).status_code == 401
    assert client.get("/api/v1/workdays", headers={"X-API-Key": "secret", **ANNA}).status_code == 200

    assert client.post("/api/v1/auth/token", json={"apiKey": "wrong", "userId": "anna"}).status_code == 401
    tokens = client.post("/api/v1/auth/token", json={"apiKey": "secret", "userId": "anna"}).json()
    assert tokens["user_id"] == "anna"
    bearer = {"Authorization": f"Bearer {tokens['access_token']}"}

    resp = client.post("/api/v1/workdays/start", json={"start_iso": "2024-05-02T08:00:00"}, headers=bearer)
    assert resp.status_code == 201
    assert resp.json()["user_id"] == "anna"

    refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    bad = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert bad.status_code == 401


def test_library_tag_append_and_finished_edit(client):
    task = _day_with_one_task(client)
    url = f"/api/v1/tasks/{task['id']}"

    resp = client.post(f"{url}/tags", json={"tag": "router"}, headers=ANNA)
    assert resp.status_code == 200
    assert resp.json()["note"] == "#router"
    resp = client.post(f"{url}/tags", json={"tag": "desk", "field": "title"}, headers=ANNA)
    assert resp.json()["title"] == "Desk #desk"
    assert client.post(f"{url}/tags", json={"tag": "x", "field": "notes"}, headers=ANNA).status_code == 422

    client.post(f"{url}/finish", json={"end_iso": "2024-05-02T11:00:00"}, headers=ANNA)
    resp = client.patch(url, json={"note": "  "}, headers=ANNA)
    assert resp.status_code == 422
    assert client.get(url, headers=ANNA).json()["tags"] == ["desk", "router"]
