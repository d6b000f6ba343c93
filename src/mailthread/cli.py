"""Command-line interface for mailthread.

Runs the threading engine over JSON message records produced by a mail
parser.

Usage:
    python -m mailthread validate-config
    python -m mailthread build messages.json --output threads.json
    python -m mailthread find new_message.json --threads threads.json
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mailthread.config import get_config, get_config_path, load_config, validate_config_file
from mailthread.config_schema import AppConfig
from mailthread.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    InvalidMessageError,
    RecordLoadError,
)
from mailthread.core.logging import configure_logging
from mailthread.engine.models import Thread
from mailthread.engine.threading_engine import ThreadingEngine
from mailthread.records import dump_threads, load_message, load_messages, load_threads

console = Console()


def _resolve_config(ctx: click.Context) -> AppConfig:
    """Load the config file, or fall back to defaults when none exists.

    An explicitly passed --config must exist and be valid. Otherwise the
    cached get_config() singleton is used when its file exists. Prints an
    actionable error and exits with status 1 on failure.
    """
    config_path: Path | None = ctx.obj["config_path"]

    if config_path is None and not get_config_path().exists():
        config = AppConfig()
    else:
        try:
            config = load_config(config_path) if config_path else get_config()
        except (ConfigLoadError, ConfigValidationError) as e:
            console.print(f"[red]Config error:[/red] {escape(str(e))}")
            sys.exit(1)

    if not ctx.obj["debug"]:
        logging.getLogger().setLevel(config.logging.level)

    return config


def _init_engine(ctx: click.Context) -> ThreadingEngine:
    config = _resolve_config(ctx)
    return ThreadingEngine(config.threading)


def _print_threads_table(threads: list[Thread]) -> None:
    table = Table(title=f"{len(threads)} threads")
    table.add_column("Thread", style="cyan", no_wrap=True)
    table.add_column("Subject")
    table.add_column("Messages", justify="right")
    table.add_column("Participants", justify="right")
    table.add_column("Last message")

    for thread in threads:
        table.add_row(
            escape(thread.thread_id),
            escape(thread.subject) or "[dim](no subject)[/dim]",
            str(thread.message_count),
            str(len(thread.participants)),
            thread.last_message_at.isoformat() if thread.last_message_at else "",
        )

    console.print(table)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file (default: config/config.yaml, if present)",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, config_path: Path | None) -> None:
    """mailthread - group email messages into conversation threads."""
    # Logs go to stderr so --output JSON and tables stay clean
    configure_logging(
        log_level="DEBUG" if debug else "WARNING",
        json_output=False,
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path


@cli.command("validate-config")
@click.pass_context
def validate_config(ctx: click.Context) -> None:
    """Validate the configuration file.

    Checks that config.yaml exists and passes Pydantic schema validation.
    Reports specific errors for invalid fields.
    """
    config_path: Path | None = ctx.obj["config_path"]
    console.print(f"Validating config: [cyan]{config_path or get_config_path()}[/cyan]")

    is_valid, message = validate_config_file(config_path)

    if is_valid:
        console.print(f"\n[green]✓[/green] {escape(message)}")
        sys.exit(0)
    else:
        console.print(f"\n[red]✗[/red] {escape(message)}")
        sys.exit(1)


@cli.command("build")
@click.argument("messages_path", type=click.Path(exists=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the threads as JSON to this file",
)
@click.pass_context
def build(ctx: click.Context, messages_path: Path, output_path: Path | None) -> None:
    """Build threads from a JSON array of message records."""
    engine = _init_engine(ctx)

    try:
        messages = load_messages(messages_path)
    except (RecordLoadError, InvalidMessageError) as e:
        console.print(f"[red]Input error:[/red] {escape(str(e))}")
        sys.exit(1)

    threads = engine.build_threads(messages)

    if output_path:
        output_path.write_text(dump_threads(threads), encoding="utf-8")
        console.print(f"Wrote {len(threads)} threads to [cyan]{escape(str(output_path))}[/cyan]")

    _print_threads_table(threads)


@cli.command("find")
@click.argument("message_path", type=click.Path(exists=False, path_type=Path))
@click.option(
    "--threads",
    "-t",
    "threads_path",
    type=click.Path(exists=False, path_type=Path),
    required=True,
    help="Threads JSON written by 'build --output'",
)
@click.pass_context
def find(ctx: click.Context, message_path: Path, threads_path: Path) -> None:
    """Find the existing thread a single new message belongs to."""
    engine = _init_engine(ctx)

    try:
        message = load_message(message_path)
        threads = load_threads(threads_path)
    except (RecordLoadError, InvalidMessageError) as e:
        console.print(f"[red]Input error:[/red] {escape(str(e))}")
        sys.exit(1)

    match = engine.match_message(message, threads)

    if match is None:
        console.print("No matching thread: message starts a new thread")
        return

    console.print(
        f"[green]{escape(match.thread_id)}[/green] "
        f"(matched via {match.method} on {escape(match.matched_on)!r})"
    )


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
