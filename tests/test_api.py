"""Tests for the HTTP API."""

from fastapi.testclient import TestClient

from entry_preservation.api.app import create_app
from entry_preservation.domain.pending import PendingStatus
from tests.conftest import (
    InMemoryEntryRepository,
    InMemoryPendingRepository,
    make_guess_set,
)


def _payload(guesses: int = 2) -> dict[str, object]:
    return {
        "session_id": "session_api",
        "competition_id": "C1",
        "competition_title": "Spot the Ball",
        "prize_label": "Weekend away",
        "unit_price": 15.0,
        "guesses": [{"x": 0.1 * n, "y": 0.2 * n} for n in range(1, guesses + 1)],
        "image_ref": "https://cdn.example.com/c1.jpg",
    }


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_and_fetch_pending_entries(container) -> None:
    client = TestClient(create_app(container))

    created = client.post("/pending-entries", json=_payload(guesses=2))

    assert created.status_code == 201
    token = created.json()["token"]
    fetched = client.get(f"/pending-entries/{token}")
    assert fetched.status_code == 200
    body = fetched.json()
    assert body["submission_token"] == token
    assert [guess["id"] for guess in body["guesses"]] == ["entry-1", "entry-2"]


def test_create_pending_entries_validates_coordinates(container) -> None:
    client = TestClient(create_app(container))
    payload = _payload()
    payload["guesses"] = [{"x": 1.5, "y": 0.2}]

    response = client.post("/pending-entries", json=payload)

    assert response.status_code == 422


def test_create_pending_entries_requires_guesses(container) -> None:
    client = TestClient(create_app(container))
    payload = _payload()
    payload["guesses"] = []

    response = client.post("/pending-entries", json=payload)

    assert response.status_code == 422


def test_create_pending_entries_store_unavailable(container) -> None:
    pending = container.pending_repository
    assert isinstance(pending, InMemoryPendingRepository)
    pending.fail_inserts = True
    client = TestClient(create_app(container))

    response = client.post("/pending-entries", json=_payload())

    assert response.status_code == 503


def test_unknown_token_is_not_found(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/pending-entries/sub_missing")

    assert response.status_code == 404


def test_callback_requires_user(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/auth/callback", params={"token": "sub_abc"})

    assert response.status_code == 401


def test_callback_migrates_token(container) -> None:
    client = TestClient(create_app(container))
    token = client.post("/pending-entries", json=_payload(guesses=3)).json()["token"]

    response = client.post(
        "/auth/callback",
        params={"token": token},
        headers={"X-User-Id": "U1", "X-User-Email": "a@x.com"},
    )
    repeat = client.post(
        "/auth/callback",
        params={"token": token},
        headers={"X-User-Id": "U1"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "source": "token",
        "migrated": 3,
        "skipped": 0,
        "failed": 0,
        "completed": True,
    }
    assert repeat.json()["migrated"] == 0
    pending = container.pending_repository
    assert isinstance(pending, InMemoryPendingRepository)
    assert pending.statuses(token) == [PendingStatus.CONFIRMED] * 3


def test_callback_migrates_client_copy(container) -> None:
    client = TestClient(create_app(container))
    preserved = make_guess_set(guesses=2, email="a@x.com").to_payload()

    response = client.post(
        "/auth/callback",
        json={"preserved": preserved},
        headers={"X-User-Id": "U1", "X-User-Email": "a@x.com"},
    )

    assert response.status_code == 200
    assert response.json()["source"] == "local"
    assert response.json()["migrated"] == 2
    entries = container.entry_repository
    assert isinstance(entries, InMemoryEntryRepository)
    assert len(entries.list_entries("U1", "C1")) == 2


def test_callback_with_nothing_to_migrate(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/auth/callback", headers={"X-User-Id": "U1"})

    assert response.status_code == 200
    assert response.json()["source"] == "none"


def test_admin_sweep_requires_token(container) -> None:
    client = TestClient(create_app(container))

    assert client.post("/admin/sweep").status_code == 401
    assert (
        client.post("/admin/sweep", headers={"X-Admin-Token": "wrong"}).status_code
        == 401
    )


def test_admin_sweep_reports_counts(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/admin/sweep", headers={"X-Admin-Token": "admin-token"})

    assert response.status_code == 200
    assert response.json() == {
        "expired": 0,
        "deleted": 0,
        "temp_entries_deleted": 0,
    }


def test_admin_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/admin/health", headers={"X-Admin-Token": "admin-token"})

    assert response.status_code == 200
