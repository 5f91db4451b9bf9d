"""Builds the ``cargo update`` invocations for a reconciliation request."""

import logging
from pathlib import Path
from shlex import quote

from relock.artifacts.models import ExecOptions, ExecutionPlan, PlanStrategy, ToolConstraint, UpdateRequest, Upgrade
from relock.config.credentials import get_git_environment_variables
from relock.constants import CRATE_DATASOURCE

logger = logging.getLogger(__name__)

RUST_TOOL = "rust"


def _cargo_update_base(manifest_path: str) -> str:
    return f"cargo update --config net.git-fetch-with-cli=true --manifest-path {quote(manifest_path)}"


def build_exec_options(request: UpdateRequest, lock_path: Path | None = None) -> ExecOptions:
    """Options shared by every command of the plan.

    Commands run from the lock file's directory, which holds the manifest (a
    workspace root lock file sits above its members). The sandbox mounts only
    that directory.
    """
    config = request.config
    anchor = (lock_path if lock_path is not None else request.package_file_name).absolute()
    return ExecOptions(
        extra_env=get_git_environment_variables(),
        sandbox=config.sandbox,
        sandbox_image=config.sandbox_image,
        tool_constraints=[ToolConstraint(tool_name=RUST_TOOL, constraint=config.constraints.get(RUST_TOOL))],
        cwd=anchor.parent,
        timeout=config.timeout,
    )


def workspace_update_command(manifest_path: str, *, is_lock_file_maintenance: bool) -> str:
    """Build a full ``cargo update`` command.

    Targeted updates need ``--workspace``, otherwise cargo refuses to touch the
    lock file for crates bumped in ``Cargo.toml`` without re-resolving
    everything else.
    """
    cmd = _cargo_update_base(manifest_path)
    if not is_lock_file_maintenance:
        cmd += " --workspace"
    return cmd


def precise_update_command(manifest_path: str, dep: Upgrade) -> str:
    return f"{_cargo_update_base(manifest_path)} --package {quote(dep.coordinate)} --precise {quote(dep.new_version)}"


def _needs_workspace_update(updated_deps: list[Upgrade]) -> bool:
    """Whether some upgrade cannot be pinned with ``--precise``.

    Git dependencies have no locked registry version. Crates normally do, so a
    crate without one is unexpected and logged.
    """
    non_crate_dep = next((dep for dep in updated_deps if dep.datasource != CRATE_DATASOURCE), None)
    unlocked_crate_dep = next(
        (dep for dep in updated_deps if dep.datasource == CRATE_DATASOURCE and not dep.locked_version),
        None,
    )
    if unlocked_crate_dep is not None:
        logger.warning("Missing locked version for dependency '%s'", unlocked_crate_dep.dep_name)
    return non_crate_dep is not None or unlocked_crate_dep is not None


def plan_update(request: UpdateRequest, lock_path: Path | None = None) -> ExecutionPlan:
    """Choose the update strategy for ``request`` and build its commands.

    - Lock file maintenance: one plain ``cargo update``.
    - Any git (non-crate) dependency or crate without a locked version: one
      ``cargo update --workspace``.
    - Otherwise: ``cargo update --workspace`` followed by one
      ``cargo update --package <name>@<locked> --precise <new>`` per upgrade,
      in request order. The precise step is what moves crates whose requirement
      in ``Cargo.toml`` did not change.

    Args:
        request: The reconciliation request.
        lock_path: The lock file being reconciled. Commands run from its
            directory; defaults to the manifest's directory.

    Returns:
        The immutable execution plan.
    """
    # Absolute, so the path holds from the lock file's directory and inside the sandbox.
    manifest_path = str(request.package_file_name.absolute())
    options = build_exec_options(request, lock_path)

    if request.config.is_lock_file_maintenance:
        return ExecutionPlan(
            strategy=PlanStrategy.MAINTENANCE,
            commands=(workspace_update_command(manifest_path, is_lock_file_maintenance=True),),
            options=options,
        )

    workspace_cmd = workspace_update_command(manifest_path, is_lock_file_maintenance=False)
    if _needs_workspace_update(request.updated_deps):
        return ExecutionPlan(strategy=PlanStrategy.WORKSPACE, commands=(workspace_cmd,), options=options)

    precise_cmds = [precise_update_command(manifest_path, dep) for dep in request.updated_deps]
    return ExecutionPlan(strategy=PlanStrategy.PRECISE, commands=(workspace_cmd, *precise_cmds), options=options)
