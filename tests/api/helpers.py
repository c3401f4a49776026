"""
Shared helpers for the API tests: signup and slot creation over HTTP.
"""
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient

from tests.constants import TEST_PASSWORD


def register(client: TestClient, name: str, email: str) -> dict[str, str]:
    """Signs a user up and returns auth headers for it."""
    response = client.post(
        "/auth/register",
        json={"name": name, "email": email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def create_slot(client: TestClient, headers: dict[str, str], title: str, days_ahead: int = 1, status: str = "SWAPPABLE") -> dict:
    start = datetime.now(timezone.utc) + timedelta(days=days_ahead)
    response = client.post(
        "/slots/",
        headers=headers,
        json={
            "title": title,
            "start_time": start.isoformat(),
            "end_time": (start + timedelta(hours=1)).isoformat(),
            "status": status,
        }
    )
    assert response.status_code == 201, response.text
    return response.json()
