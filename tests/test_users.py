from datetime import datetime
from http import HTTPStatus

from dormdash import models, schemas
from dormdash.config import Settings


def test_create_and_fetch_user(client):
    resp = client.post(
        "/api/users/",
        json={"id": "auth-123", "email": "Alex@Example.edu", "user_name": "Alex"},
    )
    assert resp.status_code == HTTPStatus.CREATED
    user = resp.json()["user"]
    assert user["id"] == "auth-123"
    assert user["email"] == "alex@example.edu"

    fetched = client.get("/api/users/auth-123")
    assert fetched.status_code == HTTPStatus.OK
    assert fetched.json()["user"]["user_name"] == "Alex"


def test_create_user_assigns_id(client):
    resp = client.post("/api/users/", json={"email": "noid@example.edu"})
    assert resp.status_code == HTTPStatus.CREATED
    assert resp.json()["user"]["id"]


def test_duplicate_email_is_a_conflict(client):
    client.post("/api/users/", json={"email": "dup@example.edu"})
    resp = client.post("/api/users/", json={"email": "dup@example.edu"})
    assert resp.status_code == HTTPStatus.CONFLICT
    assert resp.json()["detail"] == "This email is already registered."


def test_invalid_email_is_rejected(client):
    resp = client.post("/api/users/", json={"email": "not-an-email"})
    assert resp.status_code == HTTPStatus.BAD_REQUEST


def test_unknown_user_returns_404(client):
    resp = client.get("/api/users/missing")
    assert resp.status_code == HTTPStatus.NOT_FOUND
    assert resp.json()["detail"] == "User not found"


def test_partial_update(client, user_factory):
    user_factory("u1", "u1@example.edu", user_name="Before")
    resp = client.patch("/api/users/u1", json={"bio": "Night owl, will fetch ramen"})
    assert resp.status_code == HTTPStatus.OK
    user = resp.json()["user"]
    assert user["bio"] == "Night owl, will fetch ramen"
    assert user["user_name"] == "Before"

    missing = client.patch("/api/users/nobody", json={"bio": "x"})
    assert missing.status_code == HTTPStatus.NOT_FOUND


def test_output_schemas_read_orm_rows(user_factory):
    user = user_factory("u9", "nine@example.edu", user_name="Nine")
    out = schemas.UserOut.model_validate(user)
    assert out.id == "u9"
    assert out.user_name == "Nine"

    row = models.Availability(
        id=3,
        user_id="u9",
        hall_id="hall-a",
        desired_order="bagel",
        active=True,
        updated_at=datetime(2025, 3, 1, 12, 0),
    )
    assert schemas.AvailabilityOut.model_validate(row).desired_order == "bagel"


def test_settings_read_environment_case_insensitively(monkeypatch):
    monkeypatch.setenv("handshake_max_attempts", "3")
    monkeypatch.setenv("UNRELATED_SETTING", "ignored")
    assert Settings().handshake_max_attempts == 3
