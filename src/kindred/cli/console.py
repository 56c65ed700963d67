"""Shared console utilities for CLI commands."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from tomllib import TOMLDecodeError
from typing import TYPE_CHECKING

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from kindred.config.models import KindredConfig
    from kindred.db.engine import Database

# Shared console instance for all CLI commands
console = Console()


def error(msg: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]{msg}[/red]")


def warning(msg: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]{msg}[/yellow]")


def success(msg: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]{msg}[/green]")


def dim(msg: str) -> None:
    """Print a dimmed message."""
    console.print(f"[dim]{msg}[/dim]")


def create_table(
    title: str,
    columns: list[tuple[str, str | dict]],
) -> Table:
    """Create a styled table with consistent formatting.

    Args:
        title: Table title.
        columns: List of (name, style) or (name, kwargs_dict) tuples.
    """
    table = Table(title=title)
    for name, style_or_kwargs in columns:
        if isinstance(style_or_kwargs, dict):
            table.add_column(name, **style_or_kwargs)
        else:
            table.add_column(name, style=style_or_kwargs)
    return table


def get_config(config_path: Path | None) -> KindredConfig:
    """Load config for a command, exiting with a message on failure.

    Without an explicit path and without any config file on disk the
    built-in defaults are used.
    """
    from kindred.config import get_default_config, load_config

    try:
        return load_config(config_path)
    except FileNotFoundError:
        if config_path is not None:
            error(f"Config file not found: {config_path}")
            raise typer.Exit(1) from None
        dim("No config file found, using defaults")
        return get_default_config()
    except TOMLDecodeError as e:
        error(f"Invalid TOML in config file: {e}")
        raise typer.Exit(1) from None
    except ValidationError as e:
        error(f"Invalid configuration: {e}")
        raise typer.Exit(1) from None


@asynccontextmanager
async def open_database(config: KindredConfig) -> AsyncGenerator[Database, None]:
    """Connected database for the duration of a command."""
    from kindred.db import Database

    database = Database.from_config(config.database)
    await database.connect()
    try:
        yield database
    finally:
        await database.disconnect()
