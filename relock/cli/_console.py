import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

_console: Console | None = None


def get_console() -> Console:
    """Return the shared Rich console instance for CLI output."""
    global _console  # noqa: PLW0603
    if _console is None:
        _console = Console(stderr=True)
    return _console


def configure_logging(verbose: bool) -> None:
    """Route relock's log records through Rich on the CLI console."""
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=get_console(), show_path=False, markup=False)
    logger = logging.getLogger("relock")
    logger.handlers = [handler]
    logger.setLevel(level)
    logger.propagate = False


def resolve_manifest(manifest: str | Path) -> Path:
    """Resolve the manifest argument to an existing file path.

    Raises:
        typer.Exit: If the path does not exist or is not a file.
    """
    resolved = Path(manifest).resolve()
    if not resolved.exists():
        console = get_console()
        console.print(f"[red]Manifest not found: {escape(str(resolved))}[/red]")
        raise typer.Exit(code=1)
    if not resolved.is_file():
        console = get_console()
        console.print(f"[red]Not a file: {escape(str(resolved))}[/red]")
        raise typer.Exit(code=1)
    return resolved
