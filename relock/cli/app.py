"""relock CLI.

Reconciles Cargo.lock after a dependency update and manages relock settings.
"""

from typing import Annotated

import typer

from relock.cli._console import configure_logging
from relock.cli.commands.config_cmd import do_config_get, do_config_list, do_config_set
from relock.cli.commands.update_cmd import do_update
from relock.constants import MANIFEST_FILENAME

app = typer.Typer(
    name="relock",
    no_args_is_help=True,
    help="relock: keep Cargo.lock consistent with an updated Cargo.toml.",
)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logs"),
    ] = False,
) -> None:
    """Configure logging for every command."""
    configure_logging(verbose)


# ── Config subcommand group ──────────────────────────────────────────
config_app = typer.Typer(
    name="config",
    no_args_is_help=True,
    help="Manage relock settings and git credentials.",
)
app.add_typer(config_app, name="config")


@config_app.command("set", help="Set a configuration value")
def config_set_cmd(
    key: Annotated[
        str,
        typer.Argument(help="Configuration key (e.g. 'sandbox', 'rust-constraint', 'git-token')"),
    ],
    value: Annotated[
        str,
        typer.Argument(help="Value to set"),
    ],
) -> None:
    """Set a configuration value."""
    do_config_set(key=key, value=value)


@config_app.command("get", help="Get a configuration value")
def config_get_cmd(
    key: Annotated[
        str,
        typer.Argument(help="Configuration key (e.g. 'sandbox', 'rust-constraint', 'git-token')"),
    ],
) -> None:
    """Get a configuration value and its source."""
    do_config_get(key=key)


@config_app.command("list", help="List all configuration values")
def config_list_cmd() -> None:
    """List all configuration values with their sources."""
    do_config_list()


# ── Top-level commands ───────────────────────────────────────────────


@app.command("update", help="Write Cargo.toml and regenerate its Cargo.lock with cargo update")
def update_cmd(
    manifest: Annotated[
        str,
        typer.Argument(help="Path to the Cargo.toml to reconcile"),
    ] = MANIFEST_FILENAME,
    upgrades: Annotated[
        list[str] | None,
        typer.Option("--upgrade", "-u", help="Upgrade as NAME[@LOCKED]=NEW (repeatable)"),
    ] = None,
    git_deps: Annotated[
        list[str] | None,
        typer.Option("--git", help="Name of an upgraded dependency that comes from git (repeatable)"),
    ] = None,
    maintenance: Annotated[
        bool,
        typer.Option("--maintenance", "-m", help="Refresh the whole lock file"),
    ] = False,
    bump: Annotated[
        bool,
        typer.Option("--bump", "-b", help="Rewrite the upgraded requirements in Cargo.toml first"),
    ] = False,
    rust: Annotated[
        str | None,
        typer.Option("--rust", help="Rust toolchain version to run cargo with"),
    ] = None,
    sandbox: Annotated[
        bool | None,
        typer.Option("--sandbox/--no-sandbox", help="Run cargo inside docker (defaults to the 'sandbox' setting)"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the results as JSON on stdout"),
    ] = False,
) -> None:
    """Reconcile Cargo.lock with an updated manifest."""
    do_update(
        manifest=manifest,
        upgrades=upgrades,
        git_deps=git_deps,
        maintenance=maintenance,
        bump=bump,
        rust=rust,
        sandbox=sandbox,
        as_json=as_json,
    )
