"""Rich output for the command line, before and after the TUI owns the screen."""

from functools import lru_cache

from rich.console import Console
from rich.markup import escape


@lru_cache(maxsize=2)
def get_console(stderr: bool = False) -> Console:
    return Console(stderr=stderr, highlight=False)


def print_error(message: str) -> None:
    """Report a startup failure on stderr."""
    get_console(stderr=True).print(f"[red]✗ {escape(message)}[/red]")


def print_version(version: str) -> None:
    get_console().print(f"[bold]Chors[/bold] version [cyan]{version}[/cyan]")
