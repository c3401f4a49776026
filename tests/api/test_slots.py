"""
Tests for the Slots API endpoints.
"""
from datetime import datetime, timedelta, timezone
from uuid import uuid4
from fastapi.testclient import TestClient

from tests.api.helpers import create_slot, register


class TestSlotsAPI:

    def test_create_and_list(self, client: TestClient):
        headers = register(client, "Alice", "alice@example.com")
        first = create_slot(client, headers, "Later", days_ahead=3, status="BUSY")
        second = create_slot(client, headers, "Sooner", days_ahead=1)

        response = client.get("/slots/", headers=headers)
        assert response.status_code == 200
        assert [slot["id"] for slot in response.json()] == [second["id"], first["id"]]

        response = client.get("/slots/", headers=headers, params={"status": "BUSY"})
        assert [slot["id"] for slot in response.json()] == [first["id"]]

    def test_create_rejects_bad_times(self, client: TestClient):
        headers = register(client, "Alice", "alice@example.com")
        start = datetime.now(timezone.utc) + timedelta(days=1)
        response = client.post("/slots/", headers=headers, json={
            "title": "Backwards",
            "start_time": start.isoformat(),
            "end_time": (start - timedelta(hours=1)).isoformat(),
        })
        assert response.status_code == 400

    def test_create_rejects_swap_pending(self, client: TestClient):
        headers = register(client, "Alice", "alice@example.com")
        start = datetime.now(timezone.utc) + timedelta(days=1)
        response = client.post("/slots/", headers=headers, json={
            "title": "Locked",
            "start_time": start.isoformat(),
            "end_time": (start + timedelta(hours=1)).isoformat(),
            "status": "SWAP_PENDING",
        })
        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidOperation"

    def test_marketplace_shows_other_users_swappable_slots(self, client: TestClient):
        alice = register(client, "Alice", "alice@example.com")
        bob = register(client, "Bob", "bob@example.com")
        create_slot(client, alice, "Alice shift")
        bob_swappable = create_slot(client, bob, "Bob shift")
        create_slot(client, bob, "Bob private", status="BUSY")

        response = client.get("/slots/marketplace", headers=alice)
        assert response.status_code == 200
        data = response.json()
        assert [slot["id"] for slot in data] == [bob_swappable["id"]]
        assert data[0]["owner"]["name"] == "Bob"

    def test_update_and_delete(self, client: TestClient):
        headers = register(client, "Alice", "alice@example.com")
        slot = create_slot(client, headers, "Shift", status="BUSY")

        response = client.patch(f"/slots/{slot['id']}", headers=headers, json={"status": "SWAPPABLE", "title": "Open shift"})
        assert response.status_code == 200
        assert response.json()["status"] == "SWAPPABLE"
        assert response.json()["title"] == "Open shift"

        response = client.delete(f"/slots/{slot['id']}", headers=headers)
        assert response.status_code == 204
        assert client.get(f"/slots/{slot['id']}", headers=headers).status_code == 404

    def test_other_users_cannot_touch_slot(self, client: TestClient):
        alice = register(client, "Alice", "alice@example.com")
        bob = register(client, "Bob", "bob@example.com")
        slot = create_slot(client, alice, "Shift")

        assert client.get(f"/slots/{slot['id']}", headers=bob).status_code == 403
        assert client.patch(f"/slots/{slot['id']}", headers=bob, json={"title": "Mine"}).status_code == 403
        assert client.delete(f"/slots/{slot['id']}", headers=bob).status_code == 403

    def test_unknown_slot(self, client: TestClient):
        headers = register(client, "Alice", "alice@example.com")
        assert client.get(f"/slots/{uuid4()}", headers=headers).status_code == 404

    def test_slots_require_auth(self, client: TestClient):
        assert client.get("/slots/").status_code == 401
