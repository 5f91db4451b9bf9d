"""Resolver executor: runs an :class:`ExecutionPlan` against the working tree."""

from __future__ import annotations

import logging
import os
import re
import shlex
import subprocess  # noqa: S404
from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from typing_extensions import override, runtime_checkable

from relock.artifacts.exceptions import ExecutionError
from relock.constants import TEMPORARY_ERROR

if TYPE_CHECKING:
    from relock.artifacts.models import ExecOptions, ExecutionPlan

logger = logging.getLogger(__name__)

_EXACT_TOOL_VERSION = re.compile(r"^\d+(\.\d+){0,2}$")


@runtime_checkable
class ExecutorProtocol(Protocol):
    """Contract for anything able to run an execution plan."""

    @abstractmethod
    def execute(self, plan: ExecutionPlan) -> None:
        """Run every command of ``plan`` in order, blocking until done.

        Args:
            plan: The commands and options to run.

        Raises:
            ExecutionError: On the first failing command; later commands are not run.
                Infrastructure failures carry the ``TEMPORARY_ERROR`` message.
        """
        ...


def _exact_tool_version(options: ExecOptions, tool_name: str) -> str | None:
    constraint = options.constraint_for(tool_name)
    if constraint and _EXACT_TOOL_VERSION.match(constraint):
        return constraint
    if constraint:
        logger.debug("Ignoring non-exact %s constraint '%s'", tool_name, constraint)
    return None


def build_sandbox_argv(command: str, options: ExecOptions, cwd: Path) -> list[str]:
    """Wrap ``command`` in a throwaway ``docker run`` sharing the working directory.

    Extra environment variables are forwarded by name so their values never
    appear on the docker command line.
    """
    image = options.sandbox_image
    rust_version = _exact_tool_version(options, "rust")
    if rust_version is not None and ":" not in image.rsplit("/", 1)[-1]:
        image = f"{image}:{rust_version}"

    argv = ["docker", "run", "--rm", "-v", f"{cwd}:{cwd}", "-w", str(cwd)]
    for env_name in sorted(options.extra_env):
        argv.extend(["-e", env_name])
    argv.extend([image, "bash", "-lc", command])
    return argv


class SubprocessExecutor(ExecutorProtocol):
    """Runs plan commands as local subprocesses, optionally inside docker."""

    def _build_env(self, options: ExecOptions) -> dict[str, str]:
        env = dict(os.environ)
        env.update(options.extra_env)
        if not options.sandbox:
            rust_version = _exact_tool_version(options, "rust")
            if rust_version is not None:
                env["RUSTUP_TOOLCHAIN"] = rust_version
        return env

    def _run(self, command: str, options: ExecOptions, env: dict[str, str]) -> None:
        cwd = (options.cwd or Path.cwd()).absolute()
        argv = build_sandbox_argv(command, options, cwd) if options.sandbox else shlex.split(command)
        logger.debug("Executing command: %s", command)

        try:
            result = subprocess.run(  # noqa: S603
                argv,
                capture_output=True,
                text=True,
                check=False,
                cwd=cwd,
                env=env,
                timeout=options.timeout,
            )
        except FileNotFoundError as exc:
            logger.warning("Executable for '%s' not found: %s", command, exc)
            raise ExecutionError(TEMPORARY_ERROR, stderr=str(exc), command=command) from exc
        except subprocess.TimeoutExpired as exc:
            logger.warning("Command timed out after %ss: %s", options.timeout, command)
            raise ExecutionError(TEMPORARY_ERROR, stderr=f"Timed out after {options.timeout}s", command=command) from exc
        except OSError as exc:
            logger.warning("Could not start '%s': %s", command, exc)
            raise ExecutionError(TEMPORARY_ERROR, stderr=str(exc), command=command) from exc

        if result.returncode < 0:
            # Killed by a signal: the host, not the resolver, failed.
            logger.warning("Command killed by signal %d: %s", -result.returncode, command)
            raise ExecutionError(
                TEMPORARY_ERROR,
                stderr=result.stderr,
                stdout=result.stdout,
                exit_code=result.returncode,
                command=command,
            )
        if result.returncode != 0:
            msg = f"Command failed: {command}\n{result.stderr}"
            raise ExecutionError(
                msg,
                stderr=result.stderr,
                stdout=result.stdout,
                exit_code=result.returncode,
                command=command,
            )

    @override
    def execute(self, plan: ExecutionPlan) -> None:
        env = self._build_env(plan.options)
        for command in plan.commands:
            self._run(command, plan.options, env)
