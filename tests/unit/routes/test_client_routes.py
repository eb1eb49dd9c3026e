"""Route tests for /clients with mocked services and identity."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from scrapehouse.core.exceptions import ConflictError, NotFoundError
from scrapehouse.core.models.clients import Client
from tests.factories.scrapers import ClientPayloadFactory

_NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _client(owner_id: uuid.UUID, **overrides) -> Client:
    values = {
        "id": uuid.uuid4(),
        "name": "HTTPX Client",
        "description": None,
        "type": "httpx",
        "owner_id": owner_id,
        "created_at": _NOW,
        "updated_at": _NOW,
    }
    values.update(overrides)
    return Client(**values)


class TestCreateClient:
    async def test_returns_201_with_owner(self, api_client, services) -> None:
        payload = ClientPayloadFactory.build()
        services.clients.create.return_value = _client(
            services.current_user.id, name=payload["name"]
        )

        response = await api_client.post("/clients/", json=payload)

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == payload["name"]
        assert body["type"] == "httpx"
        assert body["owner_id"] == str(services.current_user.id)
        owner_id, _ = services.clients.create.await_args.args
        assert owner_id == services.current_user.id

    async def test_rejects_unknown_type(self, api_client, services) -> None:
        response = await api_client.post(
            "/clients/", json=ClientPayloadFactory.build(type="selenium")
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "validation_failed"
        services.clients.create.assert_not_awaited()

    async def test_rejects_empty_name(self, api_client, services) -> None:
        response = await api_client.post("/clients/", json=ClientPayloadFactory.build(name=""))

        assert response.status_code == 400
        assert response.json()["kind"] == "validation_failed"


class TestListClients:
    async def test_uses_default_pagination(self, api_client, services) -> None:
        rows = [_client(uuid.uuid4()) for _ in range(3)]
        services.clients.find_all.return_value = (rows, 3)

        response = await api_client.get("/clients/")

        assert response.status_code == 200
        body = response.json()
        services.clients.find_all.assert_awaited_once_with(1, 20)
        assert len(body["data"]) == 3
        assert body["meta"]["total"] == 3
        assert body["meta"]["last_page"] == 1
        assert body["meta"]["prev"] is None
        assert body["meta"]["next"] is None

    async def test_rejects_page_zero(self, api_client) -> None:
        response = await api_client.get("/clients/", params={"page": 0})

        assert response.status_code == 422


class TestSingleClient:
    async def test_missing_client_returns_404(self, api_client, services) -> None:
        client_id = uuid.uuid4()
        services.clients.find_one.side_effect = NotFoundError("Client", client_id)

        response = await api_client.get(f"/clients/{client_id}")

        assert response.status_code == 404
        assert response.json() == {
            "detail": f"Client '{client_id}' not found",
            "kind": "not_found",
        }

    async def test_update_by_owner(self, api_client, services) -> None:
        existing = _client(services.current_user.id)
        services.clients.find_one.return_value = existing
        services.clients.update.return_value = _client(
            services.current_user.id, id=existing.id, type="playwright"
        )

        response = await api_client.patch(f"/clients/{existing.id}", json={"type": "playwright"})

        assert response.status_code == 200
        assert response.json()["type"] == "playwright"
        client_id, payload = services.clients.update.await_args.args
        assert client_id == existing.id
        assert payload.model_dump(exclude_unset=True) == {"type": "playwright"}

    async def test_update_by_other_user_is_forbidden(self, api_client, services) -> None:
        services.clients.find_one.return_value = _client(uuid.uuid4())

        response = await api_client.patch(f"/clients/{uuid.uuid4()}", json={"name": "mine"})

        assert response.status_code == 403
        services.clients.update.assert_not_awaited()

    async def test_delete_by_admin(self, api_client, services, test_admin) -> None:
        services.current_user = test_admin
        existing = _client(uuid.uuid4())
        services.clients.find_one.return_value = existing

        response = await api_client.delete(f"/clients/{existing.id}")

        assert response.status_code == 204
        services.clients.remove.assert_awaited_once_with(existing.id)

    async def test_delete_in_use_returns_409(self, api_client, services) -> None:
        existing = _client(services.current_user.id)
        services.clients.find_one.return_value = existing
        services.clients.remove.side_effect = ConflictError(
            "Client is referenced by existing scrapers"
        )

        response = await api_client.delete(f"/clients/{existing.id}")

        assert response.status_code == 409
        assert response.json()["kind"] == "conflict"
