"""Main CLI application."""

from typing import Annotated

import typer

from kindred.cli.commands import database, people

app = typer.Typer(
    name="kindred",
    help="Kindred - relationship memory for conversational mentors",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging",
        ),
    ] = False,
    log_file: Annotated[
        bool,
        typer.Option(
            "--log-file",
            help="Also write JSONL logs to $KINDRED_HOME/logs",
        ),
    ] = False,
) -> None:
    """Configure logging before any command runs."""
    from kindred.logging import configure_logging

    configure_logging(
        level="DEBUG" if verbose else None, use_rich=True, log_to_file=log_file
    )


database.register(app)
people.register(app)


if __name__ == "__main__":
    app()
