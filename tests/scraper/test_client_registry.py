"""Unit tests for ClientRegistry (stored and dynamic client construction)."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from scrapehouse.config.settings import get_settings
from scrapehouse.core.exceptions import NotFoundError, ValidationFailedError
from scrapehouse.core.models.clients import Client
from scrapehouse.scraper.client_registry import ClientRegistry, client_config_from_settings
from scrapehouse.scraper.http_client import ClientConfig, ClientOptions, ClientType


def _registry(client: Client | None = None, find_error: Exception | None = None):
    clients = MagicMock()
    clients.find_one = AsyncMock(return_value=client, side_effect=find_error)
    factory = MagicMock(return_value=MagicMock(name="http_client"))
    config = ClientConfig(timeout=1.0, max_retries=0)
    return ClientRegistry(clients=clients, config=config, factory=factory), clients, factory, config


class TestBuildStored:
    async def test_reads_type_from_stored_definition(self) -> None:
        stored = Client(id=uuid.uuid4(), name="c", type="playwright", owner_id=uuid.uuid4())
        registry, clients, factory, config = _registry(client=stored)
        options = ClientOptions(method="POST")

        built = await registry.build_stored(stored.id, options)

        clients.find_one.assert_awaited_once_with(stored.id)
        factory.assert_called_once_with(config, ClientType.PLAYWRIGHT, options)
        assert built is factory.return_value

    async def test_missing_definition_raises_not_found(self) -> None:
        client_id = uuid.uuid4()
        registry, _, factory, _ = _registry(find_error=NotFoundError("Client", client_id))

        with pytest.raises(NotFoundError):
            await registry.build_stored(client_id)

        factory.assert_not_called()


class TestBuildDynamic:
    def test_builds_from_type_tag_without_lookup(self) -> None:
        registry, clients, factory, config = _registry()

        registry.build_dynamic("httpx")

        clients.find_one.assert_not_called()
        factory.assert_called_once_with(config, ClientType.HTTPX, None)

    def test_unknown_type_tag_fails_validation(self) -> None:
        registry, _, factory, _ = _registry()

        with pytest.raises(ValidationFailedError) as exc_info:
            registry.build_dynamic("got_scraping")

        assert exc_info.value.field == "type"
        factory.assert_not_called()


def test_client_config_from_settings() -> None:
    settings = get_settings()

    config = client_config_from_settings(settings)

    assert config.timeout == settings.scraper_timeout_seconds
    assert config.max_retries == settings.scraper_max_retries
    assert config.default_user_agent == settings.scraper_default_user_agent
