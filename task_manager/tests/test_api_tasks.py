"""End-to-end tests for the /api/tasks endpoints."""

from datetime import datetime, timedelta, timezone

import pytest

from .conftest import bearer, register_user


def _future(days=3):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@pytest.fixture
def ann_headers(client):
    return bearer(register_user(client)["accessToken"])


@pytest.fixture
def bob_headers(client):
    return bearer(register_user(client, name="Bob", email="bob@example.com")["accessToken"])


def _create(client, headers, **payload):
    payload.setdefault("title", "Task")
    response = client.post("/api/tasks", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_tasks_require_authentication(client):
    assert client.get("/api/tasks").status_code == 401
    assert client.post("/api/tasks", json={"title": "x"}).status_code == 401
    assert client.get("/api/tasks/stats").status_code == 401


def test_pay_rent_scenario(client, ann_headers):
    created = client.post(
        "/api/tasks",
        json={"title": "Pay rent", "dueDate": _future()},
        headers=ann_headers,
    )
    assert created.status_code == 201
    task = created.json()["data"]
    assert task["status"] == "pending"
    assert task["priority"] == "medium"
    assert task["completedAt"] is None

    listed = client.get("/api/tasks", params={"status": "pending"}, headers=ann_headers)
    assert listed.status_code == 200
    assert task["id"] in [t["id"] for t in listed.json()["data"]]

    done = client.patch(f"/api/tasks/{task['id']}/status", json={"status": "completed"}, headers=ann_headers)
    assert done.status_code == 200
    assert done.json()["data"]["completedAt"] is not None

    stats = client.get("/api/tasks/stats", headers=ann_headers).json()["data"]
    assert stats == {"total": 1, "pending": 0, "inProgress": 0, "completed": 1, "overdue": 0}


def test_get_update_priority_and_delete(client, ann_headers):
    task = _create(client, ann_headers, title="Original", description="desc")

    fetched = client.get(f"/api/tasks/{task['id']}", headers=ann_headers).json()["data"]
    assert fetched["title"] == "Original"
    assert fetched["description"] == "desc"

    updated = client.put(f"/api/tasks/{task['id']}", json={"title": "Renamed"}, headers=ann_headers)
    assert updated.status_code == 200
    assert updated.json()["data"]["title"] == "Renamed"
    assert updated.json()["data"]["description"] == "desc"

    prio = client.patch(f"/api/tasks/{task['id']}/priority", json={"priority": "high"}, headers=ann_headers)
    assert prio.json()["data"]["priority"] == "high"

    deleted = client.delete(f"/api/tasks/{task['id']}", headers=ann_headers)
    assert deleted.status_code == 200
    assert client.get(f"/api/tasks/{task['id']}", headers=ann_headers).status_code == 404


def test_other_users_tasks_are_not_found(client, ann_headers, bob_headers):
    task = _create(client, bob_headers, title="Bob's")
    url = f"/api/tasks/{task['id']}"

    assert client.get(url, headers=ann_headers).status_code == 404
    assert client.put(url, json={"title": "x"}, headers=ann_headers).status_code == 404
    assert client.patch(f"{url}/status", json={"status": "completed"}, headers=ann_headers).status_code == 404
    assert client.delete(url, headers=ann_headers).status_code == 404

    missing = client.get("/api/tasks/does-not-exist", headers=ann_headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == client.get(url, headers=ann_headers).json()["message"]


def test_create_ignores_client_owner(client, ann_headers, bob_headers):
    bob_id = client.get("/api/auth/profile", headers=bob_headers).json()["data"]["id"]

    task = _create(client, ann_headers, title="Mine", userId=bob_id)

    assert task["userId"] != bob_id
    assert client.get("/api/tasks", headers=bob_headers).json()["pagination"]["totalCount"] == 0


@pytest.mark.parametrize("payload", [
    {"title": ""},
    {"title": "x" * 201},
    {"title": "ok", "status": "archived"},
    {"title": "ok", "dueDate": "2001-01-01T00:00:00Z"},
])
def test_create_validation(client, ann_headers, payload):
    response = client.post("/api/tasks", json=payload, headers=ann_headers)

    assert response.status_code == 400
    assert response.json()["error"]["type"] == "validation_error"


def test_list_pagination_and_filters(client, ann_headers):
    for i in range(12):
        _create(client, ann_headers, title=f"Task {i}", priority="high" if i % 3 == 0 else "low")

    page = client.get("/api/tasks", params={"page": 2, "limit": 5}, headers=ann_headers).json()
    assert len(page["data"]) == 5
    assert page["pagination"] == {"page": 2, "limit": 5, "totalPages": 3, "totalCount": 12}

    high = client.get("/api/tasks", params={"priority": "high", "limit": 100}, headers=ann_headers).json()
    assert high["pagination"]["totalCount"] == 4

    found = client.get("/api/tasks", params={"search": "task 1"}, headers=ann_headers).json()
    assert sorted(t["title"] for t in found["data"]) == ["Task 1", "Task 10", "Task 11"]

    titles = client.get(
        "/api/tasks", params={"sortBy": "title", "sortOrder": "asc", "limit": 3}, headers=ann_headers
    ).json()
    assert [t["title"] for t in titles["data"]] == ["Task 0", "Task 1", "Task 10"]


@pytest.mark.parametrize("params", [
    {"status": "archived"},
    {"limit": 101},
    {"page": 0},
    {"page": 10**19},
    {"sortBy": "hashed_password"},
    {"sortOrder": "up"},
])
def test_list_rejects_bad_query(client, ann_headers, params):
    assert client.get("/api/tasks", params=params, headers=ann_headers).status_code == 400


def test_list_far_page_is_empty(client, ann_headers):
    _create(client, ann_headers)

    response = client.get("/api/tasks", params={"page": 10**9, "limit": 100}, headers=ann_headers)

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert response.json()["pagination"]["totalCount"] == 1


def test_bulk_delete_only_touches_own_tasks(client, ann_headers, bob_headers):
    own = [_create(client, ann_headers, title=f"A{i}")["id"] for i in range(3)]
    foreign = _create(client, bob_headers, title="B")["id"]

    response = client.post("/api/tasks/bulk-delete", json={"taskIds": own + [foreign]}, headers=ann_headers)

    assert response.status_code == 200
    assert response.json()["data"] == {"deletedCount": 3}
    assert client.get(f"/api/tasks/{foreign}", headers=bob_headers).status_code == 200


def test_bulk_delete_limit(client, ann_headers):
    response = client.post(
        "/api/tasks/bulk-delete", json={"taskIds": [f"id-{i}" for i in range(51)]}, headers=ann_headers
    )
    assert response.status_code == 400


def test_bulk_update(client, ann_headers, bob_headers):
    own = [_create(client, ann_headers, title=f"A{i}")["id"] for i in range(2)]
    foreign = _create(client, bob_headers, title="B")["id"]

    response = client.post(
        "/api/tasks/bulk-update",
        json={"taskIds": own + [foreign], "updates": {"status": "completed"}},
        headers=ann_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"modifiedCount": 2}
    assert client.get(f"/api/tasks/{own[0]}", headers=ann_headers).json()["data"]["completedAt"] is not None
    assert client.get(f"/api/tasks/{foreign}", headers=bob_headers).json()["data"]["status"] == "pending"


def test_bulk_update_rejects_other_fields(client, ann_headers):
    task_id = _create(client, ann_headers)["id"]

    response = client.post(
        "/api/tasks/bulk-update",
        json={"taskIds": [task_id], "updates": {"title": "x"}},
        headers=ann_headers,
    )

    assert response.status_code == 400


def test_health_endpoints(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/ready").json()["status"] == "ready"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.json()["success"] is False
