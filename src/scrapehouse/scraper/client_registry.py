"""Resolves client definitions to live HTTP clients.

Two construction modes are supported:

- **stored**: the client type is read from a persisted
  :class:`~scrapehouse.core.models.clients.Client` row.
- **dynamic**: the caller supplies a bare type tag for a one-off execution;
  nothing is looked up or persisted.

Every call yields a fresh client built by the injected factory from a fixed
base :class:`~scrapehouse.scraper.http_client.ClientConfig`.  Nothing is cached.
"""

from __future__ import annotations

import uuid
from typing import Callable, Optional, Union

from scrapehouse.config.settings import Settings
from scrapehouse.core.client_service import ClientService
from scrapehouse.core.exceptions import ValidationFailedError
from scrapehouse.core.models.clients import Client
from scrapehouse.scraper.http_client import (
    ClientConfig,
    ClientOptions,
    ClientType,
    HttpClient,
    create_http_client,
)

ClientFactory = Callable[[ClientConfig, ClientType, Optional[ClientOptions]], HttpClient]


def client_config_from_settings(settings: Settings) -> ClientConfig:
    """Build the base client configuration from application settings."""
    return ClientConfig(
        timeout=settings.scraper_timeout_seconds,
        max_retries=settings.scraper_max_retries,
        retry_delay=settings.scraper_retry_delay_seconds,
        default_user_agent=settings.scraper_default_user_agent,
    )


class ClientRegistry:
    """Builds :class:`HttpClient` instances from stored or ad hoc definitions.

    Args:
        clients: Store used to resolve stored client definitions.
        config: Base configuration passed to every client.
        factory: Client factory; defaults to
            :func:`~scrapehouse.scraper.http_client.create_http_client`.
    """

    def __init__(
        self,
        clients: ClientService,
        config: ClientConfig,
        factory: ClientFactory = create_http_client,
    ) -> None:
        self.clients = clients
        self.config = config
        self.factory = factory

    async def resolve_stored_client(self, client_id: uuid.UUID) -> Client:
        """Raises :class:`~scrapehouse.core.exceptions.NotFoundError` if absent."""
        return await self.clients.find_one(client_id)

    def build_http_client(
        self,
        source: Union[Client, ClientType, str],
        options: Optional[ClientOptions] = None,
    ) -> HttpClient:
        """Construct a client from a stored definition or a raw type tag.

        Raises:
            ValidationFailedError: If the type tag is not a registered family.
        """
        type_tag = source.type if isinstance(source, Client) else source
        try:
            client_type = ClientType(type_tag)
        except ValueError as exc:
            raise ValidationFailedError(
                f"Unsupported client type: {type_tag}", field="type"
            ) from exc
        return self.factory(self.config, client_type, options)

    async def build_stored(
        self,
        client_id: uuid.UUID,
        options: Optional[ClientOptions] = None,
    ) -> HttpClient:
        definition = await self.resolve_stored_client(client_id)
        return self.build_http_client(definition, options)

    def build_dynamic(
        self,
        type_tag: Union[ClientType, str],
        options: Optional[ClientOptions] = None,
    ) -> HttpClient:
        return self.build_http_client(type_tag, options)
