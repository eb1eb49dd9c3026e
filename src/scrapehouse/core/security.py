"""API key and refresh token primitives.

Raw keys and tokens are returned to the caller exactly once; only their
SHA-256 hex digests are persisted.
"""

from __future__ import annotations

import hashlib
import secrets
import string

_API_KEY_ALPHABET = string.ascii_letters + string.digits


def generate_api_key(prefix: str = "dev_", length: int = 32) -> str:
    """Return a new API key of the form ``<prefix><length random chars>``."""
    return prefix + "".join(secrets.choice(_API_KEY_ALPHABET) for _ in range(length))


def generate_refresh_token() -> str:
    """Return a new opaque, URL-safe refresh token."""
    return secrets.token_urlsafe(48)


def hash_token(raw: str) -> str:
    """Return the SHA-256 hex digest stored in place of ``raw``."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
