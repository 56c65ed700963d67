"""Database management commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from kindred.cli.console import (
    console,
    dim,
    error,
    get_config,
    open_database,
    success,
)


def register(app: typer.Typer) -> None:
    """Register the db command group."""
    db_app = typer.Typer(help="Database management commands")

    @db_app.command("init")
    def db_init(
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Create the relationship tables if they do not exist."""
        config = get_config(config_path)

        async def run() -> None:
            async with open_database(config) as database:
                await database.create_tables()
                dim(database.url)

        asyncio.run(run())
        success("Database initialized")

    @db_app.command("status")
    def db_status(
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Show record counts per user."""
        from kindred.db.models import RelationshipRow

        config = get_config(config_path)

        async def run() -> list[tuple[str, int]]:
            async with open_database(config) as database:
                async with database.session() as session:
                    result = await session.execute(
                        select(
                            RelationshipRow.owner_user_id,
                            func.count(RelationshipRow.id),
                        )
                        .group_by(RelationshipRow.owner_user_id)
                        .order_by(RelationshipRow.owner_user_id)
                    )
                    return [(row[0], row[1]) for row in result.all()]

        try:
            counts = asyncio.run(run())
        except SQLAlchemyError as e:
            error(f"Could not read the database: {e}")
            raise typer.Exit(1) from None
        if not counts:
            dim("No relationship records")
            return
        for user_id, count in counts:
            console.print(f"{user_id}: {count} record(s)")

    app.add_typer(db_app, name="db")
