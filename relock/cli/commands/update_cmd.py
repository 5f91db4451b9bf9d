import re

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.markup import escape

from relock.artifacts.cargo_lock import extract_lock_file_versions
from relock.artifacts.engine import update_artifacts
from relock.artifacts.exceptions import ExecutionError, ManifestBumpError, ManifestWriteError
from relock.artifacts.fs import read_local_file
from relock.artifacts.locator import find_sibling_or_parent
from relock.artifacts.models import ReconciliationResult, UpdateConfig, UpdateRequest, Upgrade
from relock.artifacts.semver import newest_version
from relock.cli._console import get_console, resolve_manifest
from relock.config.credentials import is_sandbox_enabled, load_credentials
from relock.constants import CRATE_DATASOURCE, LOCK_FILENAME
from relock.manifest.bump import bump_dependency_requirements

_UPGRADE_PATTERN = re.compile(r"^(?P<name>[A-Za-z0-9_-]+)(?:@(?P<locked>[^=]+))?=(?P<new>.+)$")
_RESULTS_ADAPTER = TypeAdapter(list[ReconciliationResult])


def parse_upgrade(spec: str, git_deps: set[str]) -> Upgrade:
    """Parse an ``NAME[@LOCKED]=NEW`` upgrade argument.

    Raises:
        ValueError: If the argument is malformed or carries an invalid version.
    """
    match = _UPGRADE_PATTERN.match(spec.strip())
    if match is None:
        msg = f"Invalid upgrade '{spec}'. Expected NAME[@LOCKED]=NEW, e.g. 'serde@1.0.100=1.0.200'."
        raise ValueError(msg)
    name = match.group("name")
    return Upgrade(
        dep_name=name,
        locked_version=match.group("locked"),
        new_version=match.group("new"),
        datasource="git" if name in git_deps else CRATE_DATASOURCE,
    )


def _display_lock_diff(console: Console, old_content: str, new_content: str) -> None:
    """Display per-package version changes between two lock file contents."""
    old_versions = extract_lock_file_versions(old_content) or {}
    new_versions = extract_lock_file_versions(new_content) or {}

    added = sorted(set(new_versions) - set(old_versions))
    removed = sorted(set(old_versions) - set(new_versions))

    updated: list[str] = []
    for name in sorted(set(old_versions) & set(new_versions)):
        if sorted(old_versions[name]) != sorted(new_versions[name]):
            old_ver = ", ".join(old_versions[name])
            new_ver = ", ".join(new_versions[name])
            updated.append(f"{name}: {old_ver} -> {new_ver}")

    if not added and not removed and not updated:
        console.print("[dim]Lock file content changed, but no package versions moved.[/dim]")
        return

    for name in added:
        version = newest_version(new_versions[name]) or new_versions[name][-1]
        console.print(f"  [green]+ {escape(name)}@{escape(version)}[/green]")

    for name in removed:
        version = newest_version(old_versions[name]) or old_versions[name][-1]
        console.print(f"  [red]- {escape(name)}@{escape(version)}[/red]")

    for line in updated:
        console.print(f"  [yellow]{escape(line)}[/yellow]")


def _build_config(maintenance: bool, rust: str | None, sandbox: bool | None) -> UpdateConfig:
    credentials = load_credentials()
    rust_constraint = rust or credentials["rust_constraint"]
    return UpdateConfig(
        is_lock_file_maintenance=maintenance,
        constraints={"rust": rust_constraint} if rust_constraint else {},
        sandbox=is_sandbox_enabled() if sandbox is None else sandbox,
        sandbox_image=credentials["sandbox_image"],
    )


def _report(console: Console, results: list[ReconciliationResult] | None, old_content: str | None, as_json: bool) -> None:
    if as_json:
        typer.echo(_RESULTS_ADAPTER.dump_json(results or [], exclude_none=True).decode())
        if any(result.artifact_error is not None for result in results or []):
            raise typer.Exit(code=1)
        return

    if results is None:
        console.print(f"[dim]No changes: {LOCK_FILENAME} is up to date or absent.[/dim]")
        return

    for result in results:
        if result.artifact_error is not None:
            console.print(f"[red]Failed to update {escape(result.artifact_error.lock_file)}:[/red]")
            console.print(escape(result.artifact_error.stderr))
            raise typer.Exit(code=1)
        if result.file is not None:
            console.print(f"[green]Updated {escape(result.file.path)}[/green]")
            if old_content is not None:
                _display_lock_diff(console, old_content, result.file.contents)


def do_update(
    manifest: str,
    upgrades: list[str] | None = None,
    git_deps: list[str] | None = None,
    maintenance: bool = False,
    bump: bool = False,
    rust: str | None = None,
    sandbox: bool | None = None,
    as_json: bool = False,
) -> None:
    """Reconcile the lock file of a Cargo manifest after a dependency update.

    Args:
        manifest: Path to the Cargo.toml to reconcile.
        upgrades: Upgrade specs in ``NAME[@LOCKED]=NEW`` form.
        git_deps: Names of upgrades that come from git rather than crates.io.
        maintenance: Refresh the whole lock file instead of targeting upgrades.
        bump: Rewrite the upgraded requirements in the manifest first.
        rust: Rust toolchain version to run cargo with.
        sandbox: Run cargo inside docker; None defers to the settings file.
        as_json: Print the results as JSON on stdout.
    """
    console = get_console()
    manifest_path = resolve_manifest(manifest)
    git_dep_names = set(git_deps or [])

    try:
        updated_deps = [parse_upgrade(spec, git_dep_names) for spec in upgrades or []]
    except ValueError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc

    if maintenance and updated_deps:
        console.print("[red]--maintenance refreshes the whole lock file and cannot be combined with --upgrade.[/red]")
        raise typer.Exit(code=1)

    manifest_content = manifest_path.read_text(encoding="utf-8")
    if bump:
        try:
            manifest_content = bump_dependency_requirements(manifest_content, updated_deps)
        except ManifestBumpError as exc:
            console.print(f"[red]Could not update {escape(manifest_path.name)}: {escape(exc.message)}[/red]")
            raise typer.Exit(code=1) from exc

    try:
        request = UpdateRequest(
            package_file_name=manifest_path,
            new_package_file_content=manifest_content,
            updated_deps=updated_deps,
            config=_build_config(maintenance, rust, sandbox),
        )
    except ValidationError as exc:
        console.print(f"[red]Invalid update request: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc

    lock_path = find_sibling_or_parent(manifest_path, LOCK_FILENAME)
    old_content = read_local_file(lock_path) if lock_path is not None else None

    try:
        results = update_artifacts(request)
    except ManifestWriteError as exc:
        console.print(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc
    except ExecutionError as exc:
        console.print(f"[red]Could not run cargo ({escape(exc.stderr or exc.message)}). Try again later.[/red]")
        raise typer.Exit(code=2) from exc

    _report(console, results, old_content, as_json)
