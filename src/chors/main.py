"""Main entry point for Chors."""

from __future__ import annotations

from pathlib import Path

import typer

from chors import __version__
from chors.models.exceptions import ChorsError
from chors.services.config_service import get_config_service
from chors.services.interaction import InteractionMachine
from chors.services.storage_service import StorageService, restore_snapshot
from chors.ui.app import run_app
from chors.utils.logger import get_logger, set_level
from chors.utils.ui.console import print_error, print_version

app = typer.Typer(
    name="chors",
    help="A terminal task manager for nested tasks, saved views and a calendar",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        print_version(__version__)
        raise typer.Exit()


@app.command()
def run(
    file: Path | None = typer.Option(
        None,
        "--file",
        "-f",
        help="Task file to open (default: tasks.json in the user config directory)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Open the task list."""
    try:
        config_service = get_config_service()
    except RuntimeError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    config = config_service.config
    set_level(config.logging.level)

    path = file.expanduser() if file is not None else config_service.default_model_path
    storage = StorageService(path)

    try:
        store, views = restore_snapshot(storage.load(), config)
    except ChorsError as e:
        print_error(f"Cannot open {path}: {e}")
        raise typer.Exit(1) from e

    get_logger().info("session start: %s (%d tasks)", path, len(store))
    run_app(InteractionMachine(store, views, config), storage)
    get_logger().info("session end: %s", path)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
