"""Configuration package for Scrapehouse.

Re-exports the settings accessor so callers can write::

    from scrapehouse.config import get_settings
"""

from __future__ import annotations

from scrapehouse.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
