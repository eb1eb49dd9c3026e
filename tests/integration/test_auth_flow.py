"""End-to-end authentication flow against a live PostgreSQL database."""

from __future__ import annotations

import pytest

from scrapehouse.core.models.users import UserRole
from tests.conftest import TEST_PASSWORD, bearer_headers, create_db_user
from tests.factories.users import SignUpPayloadFactory

pytestmark = pytest.mark.integration


async def test_sign_up_then_sign_in(client) -> None:
    payload = SignUpPayloadFactory.build()

    created = await client.post("/auth/sign-up", json=payload)
    assert created.status_code == 201
    assert created.json()["role"] == UserRole.USER

    headers = await bearer_headers(client, payload["email"], payload["password"])
    me = await client.get("/users/me", headers=headers)

    assert me.status_code == 200
    assert me.json()["username"] == payload["username"]


async def test_duplicate_email_is_rejected(client) -> None:
    payload = SignUpPayloadFactory.build()
    assert (await client.post("/auth/sign-up", json=payload)).status_code == 201

    again = await client.post(
        "/auth/sign-up", json=SignUpPayloadFactory.build(email=payload["email"].upper())
    )

    assert again.status_code == 409
    assert again.json()["kind"] == "conflict"


async def test_wrong_password_is_rejected(client, db_session) -> None:
    user = await create_db_user(db_session)

    response = await client.post(
        "/auth/sign-in", data={"username": user.email, "password": "not-the-password"}
    )

    assert response.status_code == 401


async def test_refresh_token_rotation(client, db_session) -> None:
    user = await create_db_user(db_session)
    signed_in = await client.post(
        "/auth/sign-in", data={"username": user.email, "password": TEST_PASSWORD}
    )
    original = signed_in.json()["refresh_token"]

    rotated = await client.post("/auth/refresh-token", json={"refresh_token": original})
    assert rotated.status_code == 200
    replacement = rotated.json()["refresh_token"]
    assert replacement != original

    reused = await client.post("/auth/refresh-token", json={"refresh_token": original})
    assert reused.status_code == 401

    again = await client.post("/auth/refresh-token", json={"refresh_token": replacement})
    assert again.status_code == 200


async def test_api_key_authenticates_until_revoked(client, db_session) -> None:
    user = await create_db_user(db_session)
    headers = await bearer_headers(client, user.email)

    issued = await client.post("/users/me/api-key", headers=headers)
    assert issued.status_code == 201
    api_key = issued.json()["api_key"]

    me = await client.get("/users/me", headers={"X-API-Key": api_key})
    assert me.status_code == 200
    assert me.json()["has_api_key"] is True

    revoked = await client.delete("/users/me/api-key", headers=headers)
    assert revoked.status_code == 204

    rejected = await client.get("/users/me", headers={"X-API-Key": api_key})
    assert rejected.status_code == 401


async def test_inactive_user_cannot_sign_in(client, db_session) -> None:
    user = await create_db_user(db_session, is_active=False)

    response = await client.post(
        "/auth/sign-in", data={"username": user.email, "password": TEST_PASSWORD}
    )

    assert response.status_code == 401


async def test_bearer_login_token_reaches_protected_route(client, db_session) -> None:
    user = await create_db_user(db_session)

    response = await client.post(
        "/auth/bearer/login", data={"username": user.email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

    assert me.status_code == 200
    assert me.json()["email"] == user.email
