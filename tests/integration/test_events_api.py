"""
Integration tests for /api/events.
"""

from datetime import datetime, timedelta, timezone

from app.models import EventStatus


def iso(hours_from_now):
    return (datetime.now(timezone.utc) + timedelta(hours=hours_from_now)).isoformat()


def test_create_and_list_events(client, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)

    created = client.post(
        "/api/events",
        json={"title": "Planning", "startTime": iso(48), "endTime": iso(49)},
        headers=headers,
    )
    client.post(
        "/api/events",
        json={"title": "Earlier", "startTime": iso(24), "endTime": iso(25), "status": "SWAPPABLE"},
        headers=headers,
    )

    assert created.status_code == 201
    event = created.json()["data"]["event"]
    assert event["status"] == "BUSY"
    assert event["userId"] == user.id

    listing = client.get("/api/events", headers=headers).json()["data"]
    assert listing["count"] == 2
    assert [e["title"] for e in listing["events"]] == ["Earlier", "Planning"]


def test_create_requires_authentication(client):
    response = client.post("/api/events", json={"title": "x", "startTime": iso(1), "endTime": iso(2)})

    assert response.status_code == 401


def test_create_with_inverted_times(client, make_user, auth_headers):
    response = client.post(
        "/api/events",
        json={"title": "Backwards", "startTime": iso(5), "endTime": iso(4)},
        headers=auth_headers(make_user()),
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "endTime" in error["details"]


def test_create_with_missing_title(client, make_user, auth_headers):
    response = client.post(
        "/api/events",
        json={"title": "   ", "startTime": iso(5), "endTime": iso(6)},
        headers=auth_headers(make_user()),
    )

    assert response.status_code == 400
    assert "title" in response.json()["error"]["details"]


def test_create_swap_pending_is_locked(client, make_user, auth_headers):
    response = client.post(
        "/api/events",
        json={"title": "Pending", "startTime": iso(5), "endTime": iso(6), "status": "SWAP_PENDING"},
        headers=auth_headers(make_user()),
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "EVENT_LOCKED"


def test_update_and_toggle_status(client, make_user, make_event, auth_headers):
    user = make_user()
    event = make_event(user)
    headers = auth_headers(user)

    renamed = client.put(f"/api/events/{event.id}", json={"title": "Renamed"}, headers=headers)
    assert renamed.status_code == 200
    assert renamed.json()["data"]["event"]["title"] == "Renamed"

    toggled = client.patch(f"/api/events/{event.id}/status", json={"status": "swappable"}, headers=headers)
    assert toggled.status_code == 200
    assert toggled.json()["data"]["event"]["status"] == "SWAPPABLE"


def test_update_pending_event_is_locked(client, make_user, make_event, auth_headers):
    user = make_user()
    event = make_event(user, status=EventStatus.SWAP_PENDING)

    response = client.put(f"/api/events/{event.id}", json={"title": "Nope"}, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "EVENT_LOCKED"


def test_other_users_event_is_forbidden(client, make_user, make_event, auth_headers):
    owner = make_user()
    event = make_event(owner)

    response = client.delete(f"/api/events/{event.id}", headers=auth_headers(make_user()))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "AUTHORIZATION_ERROR"


def test_unknown_and_malformed_event_ids(client, make_user, auth_headers):
    headers = auth_headers(make_user())

    missing = client.delete("/api/events/00000000-0000-4000-8000-000000000000", headers=headers)
    malformed = client.delete("/api/events/abc", headers=headers)

    assert missing.status_code == 404
    assert malformed.status_code == 400


def test_delete_event(client, make_user, make_event, auth_headers):
    user = make_user()
    event = make_event(user)
    headers = auth_headers(user)

    response = client.delete(f"/api/events/{event.id}", headers=headers)

    assert response.status_code == 200
    assert response.json()["data"] == {"deletedSwapRequests": 0}
    assert client.get("/api/events", headers=headers).json()["data"]["count"] == 0


def test_marketplace_lists_other_users_swappable_events(client, make_user, make_event, auth_headers):
    viewer = make_user()
    seller = make_user(name="Seller")
    make_event(viewer, status=EventStatus.SWAPPABLE)
    listed = make_event(seller, status=EventStatus.SWAPPABLE)
    make_event(seller, status=EventStatus.BUSY)

    data = client.get("/api/events/marketplace", headers=auth_headers(viewer)).json()["data"]

    assert data["count"] == 1
    assert data["events"][0]["id"] == listed.id
    assert data["events"][0]["owner"]["name"] == "Seller"
