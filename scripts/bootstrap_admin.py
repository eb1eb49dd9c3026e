#!/usr/bin/env python
"""Bootstrap the first admin user.

Run **once** after the Alembic migrations have been applied to create the
initial admin account.  The admin can then create users and promote them.

Usage::

    python scripts/bootstrap_admin.py

Environment variables (via .env or shell)::

    FIRST_ADMIN_EMAIL     The email address for the admin account.
    FIRST_ADMIN_PASSWORD  The initial password for the admin account.
    FIRST_ADMIN_USERNAME  Optional, defaults to ``admin``.

If a user with the given email already exists it is updated to
``role='admin'`` and ``is_active=True`` (idempotent re-run).

Exit codes:
    0 — Success (user created or already existed and was updated).
    1 — Missing environment variables.
"""

from __future__ import annotations

import asyncio
import os
import sys
from typing import Optional

# Ensure the src layout is on sys.path when running as a standalone script.
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_SRC_DIR = os.path.join(os.path.dirname(_SCRIPT_DIR), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)


async def _bootstrap() -> None:
    """Create or update the admin user row in the database.

    Raises:
        SystemExit: With code 1 if the admin credentials are not configured.
    """
    from fastapi_users.password import PasswordHelper  # noqa: PLC0415
    from sqlalchemy import select  # noqa: PLC0415

    from scrapehouse.config.settings import get_settings  # noqa: PLC0415
    from scrapehouse.core.database import AsyncSessionLocal  # noqa: PLC0415
    from scrapehouse.core.models.users import User, UserRole  # noqa: PLC0415

    settings = get_settings()

    admin_email: str = str(settings.first_admin_email)
    admin_password: str = settings.first_admin_password

    if not admin_email or not admin_password:
        print(
            "[bootstrap_admin] ERROR: FIRST_ADMIN_EMAIL and FIRST_ADMIN_PASSWORD "
            "must be set in the environment or .env file.",
            file=sys.stderr,
        )
        sys.exit(1)

    hashed = PasswordHelper().hash(admin_password)

    async with AsyncSessionLocal() as session:
        async with session.begin():
            result = await session.execute(
                select(User).where(User.email == admin_email)
            )
            existing: Optional[User] = result.scalars().first()

            if existing is not None:
                changed: list[str] = []
                if existing.role != UserRole.ADMIN:
                    existing.role = UserRole.ADMIN
                    changed.append("role -> admin")
                if not existing.is_active:
                    existing.is_active = True
                    changed.append("is_active -> True")
                if changed:
                    print(
                        f"[bootstrap_admin] Existing user '{admin_email}' updated: "
                        + ", ".join(changed)
                    )
                else:
                    print(
                        f"[bootstrap_admin] Admin user '{admin_email}' already exists.  "
                        "Nothing to do."
                    )
            else:
                session.add(
                    User(
                        email=admin_email,
                        username=settings.first_admin_username,
                        name="Administrator",
                        hashed_password=hashed,
                        role=UserRole.ADMIN,
                        is_active=True,
                    )
                )
                print(f"[bootstrap_admin] Created admin user '{admin_email}'.")

    print("[bootstrap_admin] Done.")
    print(
        "\nNext steps:\n"
        "  1. Sign in:  POST http://localhost:8000/auth/sign-in\n"
        "  2. Seed default clients and scrapers:  python scripts/seed_defaults.py\n"
    )


def main() -> None:
    asyncio.run(_bootstrap())


if __name__ == "__main__":
    main()
