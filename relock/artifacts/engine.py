"""Lock file reconciliation: keep ``Cargo.lock`` consistent with an updated ``Cargo.toml``.

:func:`update_artifacts` writes the new manifest, runs ``cargo update`` and
reports what happened to the lock file. When a batch of precise updates fails
because an earlier step already moved a later step's crate, the request is
narrowed to the upgrades the lock file does not satisfy yet and reattempted,
up to ``recursion_limit`` times.
"""

import logging
from pathlib import Path

from relock.artifacts.cargo_lock import extract_lock_file_versions
from relock.artifacts.classifier import FailureKind, classify_failure
from relock.artifacts.differ import LockDiff, diff_lock_file
from relock.artifacts.exceptions import ExecutionError
from relock.artifacts.executor import ExecutorProtocol, SubprocessExecutor
from relock.artifacts.fs import read_local_file, write_local_file
from relock.artifacts.locator import find_sibling_or_parent
from relock.artifacts.models import ReconciliationResult, UpdateRequest, Upgrade
from relock.artifacts.planner import plan_update
from relock.artifacts.signatures import matching_signatures
from relock.constants import DEFAULT_RECURSION_LIMIT, LOCK_FILENAME

logger = logging.getLogger(__name__)


def narrow_updated_deps(updated_deps: list[Upgrade], lock_content: str) -> list[Upgrade] | None:
    """Drop the upgrades whose target version is already locked.

    Args:
        updated_deps: The upgrades of the failed attempt.
        lock_content: Lock file content as left on disk by the failed attempt.

    Returns:
        The upgrades still to apply, in their original order, or None if the
        lock file content cannot be parsed.
    """
    versions = extract_lock_file_versions(lock_content)
    if versions is None:
        return None

    remaining: list[Upgrade] = []
    for dep in updated_deps:
        if dep.new_version in versions.get(dep.crate_name, []):
            logger.debug("Dependency '%s' is already locked at %s, dropping it from the request", dep.crate_name, dep.new_version)
            continue
        remaining.append(dep)
    return remaining


def _recover(request: UpdateRequest, error: ExecutionError, lock_path: Path, attempts_left: int) -> UpdateRequest | None:
    """Work out a narrower request to retry after a failed attempt.

    Returns:
        The request to retry with, or None if the failure is terminal.
    """
    if classify_failure(error) is not FailureKind.RECOVERABLE or attempts_left <= 0:
        return None

    # Earlier commands of the plan may have succeeded, so the lock file on disk
    # is the only reliable state now.
    lock_content = read_local_file(lock_path)
    if not lock_content:
        return None

    remaining = narrow_updated_deps(request.updated_deps, lock_content)
    if remaining is None or len(remaining) >= len(request.updated_deps):
        return None

    logger.debug("Dependency already up to date - reattempting with %d of %d upgrades", len(remaining), len(request.updated_deps))
    return request.with_updated_deps(remaining)


def update_artifacts(
    request: UpdateRequest,
    executor: ExecutorProtocol | None = None,
    *,
    recursion_limit: int = DEFAULT_RECURSION_LIMIT,
) -> list[ReconciliationResult] | None:
    """Bring the lock file of ``request``'s manifest in line with its new content.

    Args:
        request: Manifest path, new manifest content, upgrades and config.
        executor: Where to run resolver commands. Defaults to local subprocesses.
        recursion_limit: How many narrowed retries a recoverable conflict may trigger.

    Returns:
        None when there is no lock file or it did not change; otherwise a
        single-element list holding either the new lock file content or an
        artifact error.

    Raises:
        ManifestWriteError: If the new manifest content cannot be written.
        ExecutionError: If the resolver failed for an infrastructure reason
            (``TEMPORARY_ERROR``).
    """
    executor = executor or SubprocessExecutor()
    attempts_left = recursion_limit

    while True:
        manifest_path = request.package_file_name
        logger.debug("update_artifacts(%s)", manifest_path)

        # Standalone crates keep Cargo.lock as a sibling; workspace members use
        # the workspace root's lock file further up.
        lock_path = find_sibling_or_parent(manifest_path, LOCK_FILENAME)
        existing_lock_content = read_local_file(lock_path) if lock_path is not None else None
        if lock_path is None or not existing_lock_content:
            logger.debug("No %s found", LOCK_FILENAME)
            return None
        lock_file_name = str(lock_path)

        is_lock_file_maintenance = request.config.is_lock_file_maintenance
        if not is_lock_file_maintenance and not request.updated_deps:
            logger.debug("No more dependencies to update")
            return [ReconciliationResult.addition(lock_file_name, existing_lock_content)]

        write_local_file(manifest_path, request.new_package_file_content)
        logger.debug("Updating %s", lock_file_name)
        plan = plan_update(request, lock_path)

        try:
            executor.execute(plan)
        except ExecutionError as exc:
            if classify_failure(exc) is FailureKind.FATAL:
                raise

            retry = _recover(request, exc, lock_path, attempts_left)
            if retry is not None:
                request = retry
                attempts_left -= 1
                continue

            signatures = ", ".join(matching_signatures(exc.stderr)) or "unrecognized"
            logger.debug("Failed to update %s (%s): %s", lock_file_name, signatures, exc.message)
            return [ReconciliationResult.error(lock_file_name, exc.message)]

        new_lock_content = read_local_file(lock_path)
        if new_lock_content is None:
            msg = f"{LOCK_FILENAME} could not be read after the update"
            logger.debug(msg)
            return [ReconciliationResult.error(lock_file_name, msg)]

        if diff_lock_file(existing_lock_content, new_lock_content) is LockDiff.UNCHANGED:
            logger.debug("%s is unchanged", LOCK_FILENAME)
            return None

        logger.debug("Returning updated %s", LOCK_FILENAME)
        return [ReconciliationResult.addition(lock_file_name, new_lock_content)]
