#!/usr/bin/env python3
"""
Seed Users
==========

Creates the tables and inserts a small set of users for local development.

The service never writes the ``users`` table; in production it is owned by
the authentication service. Locally, run:

    python scripts/seed_users.py

and pass one of the printed ids in the ``X-User-ID`` header.
"""

import asyncio
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from src.config import Role, settings
from src.infrastructure.database import close_database, create_tables, get_session_context, init_database
from src.shared.infrastructure.logging import get_logger, setup_logging
from src.tickets.infrastructure.models import UserModel

logger = get_logger("seed_users")

SEED_USERS = [
    ("Admin User", "admin@example.com", Role.ADMIN),
    ("Agent One", "agent1@example.com", Role.AGENT),
    ("Agent Two", "agent2@example.com", Role.AGENT),
    ("Regular User", "user@example.com", Role.USER),
]


async def main() -> None:
    setup_logging(settings.log_level, settings.environment)
    init_database()
    await create_tables()

    async with get_session_context() as session:
        for name, email, role in SEED_USERS:
            existing = await session.scalar(select(UserModel).where(UserModel.email == email))
            if existing is None:
                existing = UserModel(name=name, email=email, role=role.value, is_active=True)
                session.add(existing)
                await session.flush()
                logger.info("Seeded user", extra={"email": email, "role": role.value})
            print(f"{existing.role:<6} {existing.id}  {existing.email}")

    await close_database()


if __name__ == "__main__":
    asyncio.run(main())
