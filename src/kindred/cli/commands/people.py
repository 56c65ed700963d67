"""Relationship record commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.markup import escape

from kindred.cli.console import (
    console,
    create_table,
    dim,
    error,
    get_config,
    open_database,
    success,
)
from kindred.store.protocols import StoreError

if TYPE_CHECKING:
    from kindred.people.types import RelationshipRecord

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file",
    ),
]

UserOption = Annotated[
    str,
    typer.Option(
        "--user",
        "-u",
        help="Owner user ID",
    ),
]


def _store_failed(e: Exception) -> typer.Exit:
    error(f"{e}. Has 'kindred db init' been run?")
    return typer.Exit(1)


def _format_time(record: RelationshipRecord) -> str:
    if record.last_mentioned_at is None:
        return "-"
    return record.last_mentioned_at.strftime("%Y-%m-%d %H:%M")


def _print_records(records: list[RelationshipRecord], title: str) -> None:
    table = create_table(
        title,
        [
            ("ID", {"style": "dim", "max_width": 8}),
            ("Name", "cyan"),
            ("Relation", "magenta"),
            ("Aliases", ""),
            ("Mentions", {"justify": "right"}),
            ("Last", "dim"),
        ],
    )
    for record in records:
        table.add_row(
            record.id[:8],
            record.real_name or "(unnamed)",
            record.relation_type,
            ", ".join(record.aliases) or "-",
            str(record.mention_count),
            _format_time(record),
        )
    console.print(table)


def _print_record(record: RelationshipRecord) -> None:
    console.print(f"[bold]{record.display_name() or '(unnamed)'}[/bold]")
    console.print(f"  ID: {record.id}")
    console.print(f"  Relation: {record.relation_type}")
    if record.aliases:
        console.print(f"  Aliases: {', '.join(record.aliases)}")
    if record.emotion_markers:
        console.print(f"  Emotions: {', '.join(record.emotion_markers)}")
    if record.relevant_contexts:
        console.print(f"  Contexts: {', '.join(record.relevant_contexts)}")
    console.print(f"  Mentions: {record.mention_count}")
    if record.compact_profile:
        console.print(f"  Profile: {record.compact_profile}")
    if record.mention_history:
        console.print("  History:")
        for entry in record.mention_history:
            console.print(
                f"    [dim]{entry.at.strftime('%Y-%m-%d %H:%M')}[/dim] {escape(entry.excerpt)}"
            )


def register(app: typer.Typer) -> None:
    """Register the people command group."""
    people_app = typer.Typer(help="Inspect and update relationship records")

    @people_app.command("list")
    def people_list(user: UserOption, config_path: ConfigOption = None) -> None:
        """List a user's relationship records."""
        from kindred.store.sql import SQLRelationshipStore

        config = get_config(config_path)

        async def run() -> list[RelationshipRecord]:
            async with open_database(config) as database:
                return await SQLRelationshipStore(database).query_records(user)

        try:
            records = asyncio.run(run())
        except StoreError as e:
            raise _store_failed(e) from None
        if not records:
            dim(f"No records for {user}")
            return
        _print_records(records, f"People known to {user}")

    @people_app.command("show")
    def people_show(
        record_id: Annotated[str, typer.Argument(help="Record ID")],
        config_path: ConfigOption = None,
    ) -> None:
        """Show one record with its mention history."""
        from kindred.store.sql import SQLRelationshipStore

        config = get_config(config_path)

        async def run() -> RelationshipRecord | None:
            async with open_database(config) as database:
                return await SQLRelationshipStore(database).get_record(record_id)

        try:
            record = asyncio.run(run())
        except StoreError as e:
            raise _store_failed(e) from None
        if record is None:
            error(f"Record not found: {record_id}")
            raise typer.Exit(1)
        _print_record(record)

    @people_app.command("process")
    def people_process(
        text: Annotated[str, typer.Argument(help="Message text")],
        user: UserOption,
        config_path: ConfigOption = None,
    ) -> None:
        """Run extraction and consolidation on a message."""
        from kindred.config import ConfigError
        from kindred.people.manager import create_people_memory

        config = get_config(config_path)

        async def run() -> tuple[list[str], str]:
            async with open_database(config) as database:
                memory = create_people_memory(config, database)
                names = await memory.process_mentions(text, user)
                block = await memory.select_and_render_context(user, names)
                return names, block

        try:
            names, block = asyncio.run(run())
        except ConfigError as e:
            error(str(e))
            raise typer.Exit(1) from None

        if names:
            success(f"Mentioned: {', '.join(names)}")
        else:
            dim("No people mentioned")
        console.print(block, markup=False)

    @people_app.command("context")
    def people_context(
        user: UserOption,
        names: Annotated[
            list[str] | None,
            typer.Argument(help="Names or aliases mentioned this turn"),
        ] = None,
        limit: Annotated[
            int | None,
            typer.Option("--limit", "-n", help="Maximum records"),
        ] = None,
        config_path: ConfigOption = None,
    ) -> None:
        """Print the context block for a user."""
        from kindred.people.context import render_records, select_records
        from kindred.store.sql import SQLRelationshipStore

        config = get_config(config_path)

        async def run() -> list[RelationshipRecord]:
            async with open_database(config) as database:
                return await SQLRelationshipStore(database).query_records(user)

        try:
            records = asyncio.run(run())
        except StoreError as e:
            raise _store_failed(e) from None
        selected = select_records(
            records,
            names or [],
            limit=config.people.context_limit if limit is None else limit,
        )
        console.print(
            render_records(selected, max_chars=config.people.context_max_chars),
            markup=False,
        )

    app.add_typer(people_app, name="people")
