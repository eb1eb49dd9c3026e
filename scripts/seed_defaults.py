#!/usr/bin/env python
"""Seed the default client presets and the "Metadata Scraper" definition.

Run after ``scripts/bootstrap_admin.py``.  Every row is owned by the admin
configured through ``FIRST_ADMIN_EMAIL``.  Existing rows (matched by name,
owner and type) are left untouched, so the script can be re-run safely.

Usage::

    python scripts/seed_defaults.py

Exit codes:
    0 — Success.
    1 — The admin user does not exist yet.
"""

from __future__ import annotations

import asyncio
import os
import sys
from typing import Any

_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_SRC_DIR = os.path.join(os.path.dirname(_SCRIPT_DIR), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)


DEFAULT_CLIENTS: list[dict[str, str]] = [
    {
        "name": "HTTPX Client",
        "description": "Basic httpx client",
        "type": "httpx",
    },
    {
        "name": "Playwright Client",
        "description": "Headless Chromium client for JavaScript-rendered pages",
        "type": "playwright",
    },
]


def _meta(query: str, attribute: str = "content") -> dict[str, Any]:
    return {"query": query, "extractor": f"attribute:{attribute}", "default": None}


METADATA_PARSING_MODEL: dict[str, Any] = {
    "type": "html",
    "model": {
        "metadata": {
            "query": "head",
            "nested": {
                "type": "html",
                "model": {
                    "title": {"query": "title", "extractor": "innerText", "default": None},
                    "description": _meta("meta[name='description']"),
                    "keywords": _meta("meta[name='keywords']"),
                    "author": _meta("meta[name='author'], meta[property='article:author']"),
                    "viewport": _meta("meta[name='viewport']"),
                    "charset": _meta("meta[charset]", "charset"),
                    "robots": _meta("meta[name='robots']"),
                    "ogTitle": _meta("meta[property='og:title']"),
                    "ogDescription": _meta("meta[property='og:description']"),
                    "ogType": _meta("meta[property='og:type']"),
                    "ogImage": _meta("meta[property='og:image']"),
                    "ogUrl": _meta("meta[property='og:url']"),
                    "twitterCard": _meta("meta[name='twitter:card']"),
                    "twitterTitle": _meta("meta[name='twitter:title']"),
                    "twitterDescription": _meta("meta[name='twitter:description']"),
                    "twitterImage": _meta("meta[name='twitter:image']"),
                    "canonical": _meta("link[rel='canonical']", "href"),
                    "favicon": _meta("link[rel='icon'], link[rel='shortcut icon']", "href"),
                    "themeColor": _meta("meta[name='theme-color']"),
                    "contentLanguage": _meta("meta[http-equiv='content-language']"),
                    "contentType": _meta("meta[http-equiv='content-type']"),
                },
            },
        },
    },
}


async def _seed() -> None:
    from sqlalchemy import select  # noqa: PLC0415

    from scrapehouse.config.settings import get_settings  # noqa: PLC0415
    from scrapehouse.core.database import AsyncSessionLocal  # noqa: PLC0415
    from scrapehouse.core.models import Client, Scraper, User  # noqa: PLC0415
    from scrapehouse.core.schemas.parsing_model import compile_parsing_model  # noqa: PLC0415

    settings = get_settings()
    admin_email = str(settings.first_admin_email)

    # Fails loudly if the document drifts from the parsing model schema.
    parsing_model = compile_parsing_model(METADATA_PARSING_MODEL).to_document()

    async with AsyncSessionLocal() as session:
        async with session.begin():
            admin = (
                await session.execute(select(User).where(User.email == admin_email))
            ).scalars().first()
            if admin is None:
                print(
                    f"[seed_defaults] ERROR: admin '{admin_email}' not found.  "
                    "Run scripts/bootstrap_admin.py first.",
                    file=sys.stderr,
                )
                sys.exit(1)

            clients_by_type: dict[str, Client] = {}
            for spec in DEFAULT_CLIENTS:
                existing = (
                    await session.execute(
                        select(Client).where(
                            Client.name == spec["name"],
                            Client.owner_id == admin.id,
                            Client.type == spec["type"],
                        )
                    )
                ).scalars().first()
                if existing is not None:
                    print(f"[seed_defaults] Client '{spec['name']}' exists, skipping.")
                    clients_by_type[spec["type"]] = existing
                    continue
                client = Client(owner_id=admin.id, **spec)
                session.add(client)
                await session.flush()
                clients_by_type[spec["type"]] = client
                print(f"[seed_defaults] Created client '{spec['name']}'.")

            httpx_client = clients_by_type["httpx"]
            existing_scraper = (
                await session.execute(
                    select(Scraper).where(
                        Scraper.name == "Metadata Scraper",
                        Scraper.owner_id == admin.id,
                        Scraper.client_id == httpx_client.id,
                    )
                )
            ).scalars().first()
            if existing_scraper is not None:
                print("[seed_defaults] Scraper 'Metadata Scraper' exists, skipping.")
            else:
                session.add(
                    Scraper(
                        name="Metadata Scraper",
                        description="Extracts page metadata from <head>",
                        default_url="https://google.com",
                        client_id=httpx_client.id,
                        owner_id=admin.id,
                        parsing_model=parsing_model,
                    )
                )
                print("[seed_defaults] Created scraper 'Metadata Scraper'.")

    print("[seed_defaults] Done.")


def main() -> None:
    asyncio.run(_seed())


if __name__ == "__main__":
    main()
