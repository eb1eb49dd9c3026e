"""Route tests for /users with mocked services and identity."""

from __future__ import annotations

import uuid

from scrapehouse.core.exceptions import ConflictError
from tests.factories.users import SignUpPayloadFactory


class TestSelfService:
    async def test_read_me(self, api_client, services) -> None:
        response = await api_client.get("/users/me")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == str(services.current_user.id)
        assert body["has_api_key"] is False
        assert "api_key_hash" not in body

    async def test_update_me_ignores_role(self, api_client, services) -> None:
        services.users.update.return_value = services.current_user

        response = await api_client.patch("/users/me", json={"name": "Renamed", "role": "admin"})

        assert response.status_code == 200
        user_id, payload = services.users.update.await_args.args
        assert user_id == services.current_user.id
        assert payload.model_dump(exclude_unset=True) == {"name": "Renamed"}

    async def test_generate_api_key_returns_it_once(self, api_client, services) -> None:
        services.users.issue_api_key.return_value = "dev_" + "a" * 32

        response = await api_client.post("/users/me/api-key")

        assert response.status_code == 201
        assert response.json() == {"api_key": "dev_" + "a" * 32}
        services.users.issue_api_key.assert_awaited_once_with(services.current_user)

    async def test_revoke_api_key(self, api_client, services) -> None:
        response = await api_client.delete("/users/me/api-key")

        assert response.status_code == 204
        services.users.revoke_api_key.assert_awaited_once_with(services.current_user)


class TestAdministration:
    async def test_list_requires_admin(self, api_client, services) -> None:
        response = await api_client.get("/users/")

        assert response.status_code == 403
        services.users.find_all.assert_not_awaited()

    async def test_list_as_admin(self, api_client, services, test_admin, make_user) -> None:
        services.current_user = test_admin
        services.users.find_all.return_value = ([test_admin, make_user()], 2)

        response = await api_client.get("/users/", params={"per_page": 2})

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["meta"]["last_page"] == 1

    async def test_admin_create_conflict(self, api_client, services, test_admin) -> None:
        services.current_user = test_admin
        services.users.create.side_effect = ConflictError("Email or username already in use")

        response = await api_client.post("/users/", json=SignUpPayloadFactory.build())

        assert response.status_code == 409

    async def test_read_other_user_is_forbidden(self, api_client) -> None:
        response = await api_client.get(f"/users/{uuid.uuid4()}")

        assert response.status_code == 403

    async def test_non_admin_cannot_change_role(self, api_client, services) -> None:
        response = await api_client.patch(
            f"/users/{services.current_user.id}", json={"role": "admin"}
        )

        assert response.status_code == 403
        services.users.update.assert_not_awaited()

    async def test_admin_can_deactivate(self, api_client, services, test_admin, make_user) -> None:
        services.current_user = test_admin
        target = make_user(is_active=False)
        services.users.update.return_value = target

        response = await api_client.patch(f"/users/{target.id}", json={"is_active": False})

        assert response.status_code == 200
        assert response.json()["is_active"] is False

    async def test_delete_requires_admin(self, api_client, services) -> None:
        response = await api_client.delete(f"/users/{uuid.uuid4()}")

        assert response.status_code == 403
        services.users.remove.assert_not_awaited()
