"""
create_tables.py
----------------
One-shot script to create all database tables.
Use this for quick setup. Schema migrations are managed outside this repo.

Usage:
    python create_tables.py
"""

import asyncio

from dealerdesk.core.config import settings
from dealerdesk.db.session import Database
from dealerdesk.models import Base  # Imports all models so metadata is populated


async def create_all_tables() -> None:
    database = Database(settings.DATABASE_URL, echo=True)
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await database.dispose()
    print("All tables created successfully.")


if __name__ == "__main__":
    asyncio.run(create_all_tables())
