"""Config commands for managing relock settings.

Provides set, get, and list operations for the settings stored
in ``~/.relock/credentials``.
"""

from rich import box
from rich.markup import escape
from rich.table import Table

from relock.cli._console import get_console
from relock.config.credentials import (
    VALID_KEYS,
    CredentialEntry,
    get_credential_value,
    is_secret,
    list_credentials,
    resolve_key,
    set_credential_value,
)


def _display_value(entry: CredentialEntry) -> str:
    if not entry.value:
        return "(empty)"
    if is_secret(entry.key):
        return "****" + entry.value[-4:] if len(entry.value) > 8 else "****"
    return entry.value


def do_config_set(key: str, value: str) -> None:
    """Set a setting value.

    Args:
        key: The CLI key name (e.g. "sandbox", "git-token").
        value: The value to store.
    """
    console = get_console()

    internal_key = resolve_key(key)
    if internal_key is None:
        console.print(f"[red]Unknown config key: '{escape(key)}'[/red]")
        console.print(f"[dim]Valid keys: {', '.join(VALID_KEYS)}[/dim]")
        return

    set_credential_value(internal_key, value)
    shown = "****" if is_secret(internal_key) else value
    console.print(f"[green]Set '{escape(key)}' = '{escape(shown)}'[/green]")


def do_config_get(key: str) -> None:
    """Get a setting value and display it with its source."""
    console = get_console()

    internal_key = resolve_key(key)
    if internal_key is None:
        console.print(f"[red]Unknown config key: '{escape(key)}'[/red]")
        console.print(f"[dim]Valid keys: {', '.join(VALID_KEYS)}[/dim]")
        return

    entry = get_credential_value(internal_key)
    console.print(f"[bold]{escape(key)}[/bold] = {escape(_display_value(entry))}  [dim](source: {entry.source})[/dim]")


def do_config_list() -> None:
    """List all settings with their sources."""
    console = get_console()

    table = Table(title="relock configuration", box=box.ROUNDED, show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Source", style="dim")

    for entry in list_credentials():
        table.add_row(escape(entry.cli_key), escape(_display_value(entry)), str(entry.source))

    console.print(table)
