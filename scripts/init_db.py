"""Script to create the agenda tables directly from the table definitions.

Intended for local development; deployed databases are managed with Alembic
(``python scripts/migrate.py``).
"""

import asyncio

from app.database import engine
from app.models import combined_metadata


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(combined_metadata().create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
