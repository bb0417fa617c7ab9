"""
Create the core/auth/school schemas and any missing tables.

Run once before first start (and after adding models):
  python -m educore.db.schema_check

create_all only creates what is missing; existing tables are left untouched.
"""
import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

import educore.auth.models  # noqa: F401
import educore.core.models  # noqa: F401
from educore.db.session import SCHEMAS, Base, engine


async def ensure_tables(db_engine: AsyncEngine) -> None:
    """Ensure that all required schemas/tables exist in the connected database."""
    async with db_engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            for schema in SCHEMAS:
                await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema}"))

        existing = await conn.run_sync(
            lambda sync_conn: {
                (t.schema, t.name)
                for t in Base.metadata.sorted_tables
                if sync_conn.dialect.has_table(sync_conn, t.name, schema=t.schema)
            }
        )
        await conn.run_sync(Base.metadata.create_all)

    missing = [
        f"{t.schema}.{t.name}"
        for t in Base.metadata.sorted_tables
        if (t.schema, t.name) not in existing
    ]
    if missing:
        print("Created missing tables: " + ", ".join(missing))
    else:
        print("All required core/auth/school tables already exist in the database.")


async def main() -> None:
    await ensure_tables(engine)
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
