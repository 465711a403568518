"""
Management command for creating the database schema.
"""

import asyncio

import click
from sqlmodel import SQLModel

import src.models  # noqa: F401  registers the tables on SQLModel.metadata
from src.db.session import engine
from src.utils.logger import get_logger

logger = get_logger(__name__)


@click.command()
def init_db():
    """
    Create all tables that do not exist yet.
    """
    try:
        asyncio.run(_init_db_async())
    except Exception as e:
        logger.error(f"Error creating tables: {e}")
        raise click.ClickException(str(e))

    click.echo(f"Tables ready: {', '.join(sorted(SQLModel.metadata.tables))}")


async def _init_db_async() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    await engine.dispose()


if __name__ == "__main__":
    init_db()
