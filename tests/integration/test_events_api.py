"""
HTTP tests for the event endpoints.
"""

import asyncio

import pytest

from geo_events_api.app.services.user_service import UserService

EVENTS_URL = "/api/v1/events/"


def gig(**overrides):
    body = {
        "title": "Gig",
        "description": "Live music",
        "category": "music",
        "date": "2025-06-01T19:00:00Z",
        "location": {"longitude": 0.0, "latitude": 0.0},
    }
    body.update(overrides)
    return body


@pytest.fixture
def alice_headers(register):
    headers, _ = register("alice@example.com", name="Alice")
    return headers


@pytest.fixture
def bob_headers(register):
    headers, _ = register("bob@example.com", name="Bob")
    return headers


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get(EVENTS_URL)
        assert response.status_code == 401
        assert response.json()["message"] == "No token, authorization denied"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_invalid_token(self, client):
        response = client.get(EVENTS_URL, headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIAL"


class TestEventCrud:
    def test_create_and_get(self, client, alice_headers):
        response = client.post(EVENTS_URL, json=gig(), headers=alice_headers)
        assert response.status_code == 201, response.text
        created = response.json()
        assert created["title"] == "Gig"
        assert created["location"] == {"longitude": 0.0, "latitude": 0.0}

        response = client.get(f"{EVENTS_URL}{created['id']}", headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_missing_fields(self, client, alice_headers):
        response = client.post(EVENTS_URL, json={"title": "Gig"}, headers=alice_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert [error["field"] for error in body["errors"]] == ["description", "date", "location", "category"]

    def test_duplicate(self, client, alice_headers, bob_headers):
        first = client.post(EVENTS_URL, json=gig(), headers=alice_headers).json()
        response = client.post(EVENTS_URL, json=gig(description="Again"), headers=bob_headers)
        assert response.status_code == 409
        assert response.json() == {
            "message": "Event already exists",
            "code": "CONFLICT",
            "existing_id": first["id"],
        }

    def test_update_partial(self, client, alice_headers):
        created = client.post(EVENTS_URL, json=gig(), headers=alice_headers).json()
        response = client.put(
            f"{EVENTS_URL}{created['id']}",
            json={"location": {"longitude": 2.35, "latitude": 48.85}},
            headers=alice_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["location"] == {"longitude": 2.35, "latitude": 48.85}
        assert body["title"] == "Gig"
        assert body["category"] == "music"

    def test_update_by_non_owner(self, client, alice_headers, bob_headers):
        created = client.post(EVENTS_URL, json=gig(), headers=alice_headers).json()
        response = client.put(f"{EVENTS_URL}{created['id']}", json={"title": "Mine"}, headers=bob_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to update this event"

    def test_delete_flow(self, client, alice_headers, bob_headers):
        created = client.post(EVENTS_URL, json=gig(), headers=alice_headers).json()
        url = f"{EVENTS_URL}{created['id']}"

        assert client.delete(url, headers=bob_headers).status_code == 403

        response = client.delete(url, headers=alice_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Event deleted successfully"}

        response = client.delete(url, headers=alice_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Event not found"

    def test_admin_can_delete_any_event(self, client, register, alice_headers):
        created = client.post(EVENTS_URL, json=gig(), headers=alice_headers).json()
        admin_headers, admin = register("admin@example.com", name="Admin")
        asyncio.run(UserService.set_role(admin["email"], "admin"))
        response = client.delete(f"{EVENTS_URL}{created['id']}", headers=admin_headers)
        assert response.status_code == 200


class TestEventSearch:
    def test_category_and_proximity(self, client, alice_headers):
        client.post(EVENTS_URL, json=gig(), headers=alice_headers)
        client.post(
            EVENTS_URL,
            json=gig(title="Far gig", location={"longitude": 1.0, "latitude": 0.0}),
            headers=alice_headers,
        )
        client.post(EVENTS_URL, json=gig(title="Match", category="sport"), headers=alice_headers)

        response = client.get(
            EVENTS_URL,
            params={"category": "music", "longitude": "0.00009", "latitude": "0"},
            headers=alice_headers,
        )
        assert response.status_code == 200
        assert [event["title"] for event in response.json()] == ["Gig"]

        response = client.get(EVENTS_URL, params={"category": "music"}, headers=alice_headers)
        assert sorted(event["title"] for event in response.json()) == ["Far gig", "Gig"]

    @pytest.mark.parametrize(
        "params",
        [
            {"longitude": "0"},
            {"latitude": "0"},
            {"longitude": "east", "latitude": "0"},
            {"longitude": "0", "latitude": "91"},
        ],
    )
    def test_invalid_filter(self, client, alice_headers, params):
        response = client.get(EVENTS_URL, params=params, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FILTER"


class TestAuditLogs:
    def test_admin_reads_event_history(self, client, register, alice_headers):
        created = client.post(EVENTS_URL, json=gig(), headers=alice_headers).json()
        client.delete(f"{EVENTS_URL}{created['id']}", headers=alice_headers)

        admin_headers, admin = register("admin@example.com", name="Admin")
        asyncio.run(UserService.set_role(admin["email"], "admin"))

        response = client.get("/api/v1/audit/logs", params={"object_type": "event"}, headers=admin_headers)
        assert response.status_code == 200
        actions = {log["action"] for log in response.json() if log["object_id"] == created["id"]}
        assert actions == {"create", "delete"}

    def test_regular_user_forbidden(self, client, alice_headers):
        response = client.get("/api/v1/audit/logs", headers=alice_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"


class TestMalformedRequests:
    """Malformed input is reported with the service error format."""

    def test_unparseable_date(self, client, alice_headers):
        response = client.post(EVENTS_URL, json=gig(date="not-a-date"), headers=alice_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert [error["field"] for error in body["errors"]] == ["date"]

    def test_out_of_range_longitude(self, client, alice_headers):
        response = client.post(
            EVENTS_URL,
            json=gig(location={"longitude": 500, "latitude": 0}),
            headers=alice_headers,
        )
        assert response.status_code == 400
        assert [error["field"] for error in response.json()["errors"]] == ["location.longitude"]

    def test_every_bad_field_listed(self, client, alice_headers):
        response = client.post(
            EVENTS_URL,
            json=gig(date="soon", location={"longitude": 0, "latitude": 95}),
            headers=alice_headers,
        )
        assert response.status_code == 400
        assert sorted(error["field"] for error in response.json()["errors"]) == ["date", "location.latitude"]

    @pytest.mark.parametrize("params", [{"limit": "0"}, {"limit": "lots"}, {"offset": "-1"}])
    def test_bad_pagination(self, client, alice_headers, params):
        response = client.get(EVENTS_URL, params=params, headers=alice_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INVALID_FILTER"
        assert body["message"].startswith(next(iter(params)))
