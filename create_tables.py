"""
Script to create all database tables.

This script creates all tables defined in the models.
Run this after starting PostgreSQL with Docker, or against a local SQLite
file by setting DATABASE_URL=sqlite+aiosqlite:///./imagestudio.db
"""
import asyncio
import sys

from imagestudio.config import settings
from imagestudio.database import create_all_tables, create_engine, drop_all_tables


async def main(reset: bool = False):
    """Main entry point."""
    engine = create_engine(settings.DATABASE_URL)
    try:
        if reset:
            print("Dropping database tables...")
            await drop_all_tables(engine)
        print("Creating database tables...")
        await create_all_tables(engine)
        print("All tables created successfully!")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main(reset="--reset" in sys.argv))
