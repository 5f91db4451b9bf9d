"""Narrow reader for ``Cargo.lock`` content.

The engine treats lock files as opaque blobs; this module only answers
"which versions of package X are locked?" during conflict recovery.
"""

import logging
from typing import Any, cast

from relock._utils.toml_utils import TomlError, load_toml_from_content
from relock.artifacts.exceptions import LockFileError

logger = logging.getLogger(__name__)


def parse_lock_file_packages(content: str) -> list[dict[str, Any]]:
    """Return the ``[[package]]`` tables of a Cargo.lock.

    Raises:
        LockFileError: If the content is not valid TOML or the package list is malformed.
    """
    try:
        raw = load_toml_from_content(content)
    except TomlError as exc:
        msg = f"Invalid TOML syntax in lock file: {exc.message}"
        raise LockFileError(msg) from exc

    packages = raw.get("package", [])
    if not isinstance(packages, list):
        msg = f"Lock file 'package' entry must be an array of tables, got {type(packages).__name__}"
        raise LockFileError(msg)

    tables: list[dict[str, Any]] = []
    for entry in cast("list[Any]", packages):
        if not isinstance(entry, dict):
            msg = f"Lock file package entry must be a table, got {type(entry).__name__}"
            raise LockFileError(msg)
        tables.append(cast("dict[str, Any]", entry))
    return tables


def extract_lock_file_versions(content: str) -> dict[str, list[str]] | None:
    """Map each locked package name to its locked versions, in file order.

    A package can be locked at several versions at once (e.g. two semver-
    incompatible majors pulled in by different dependents).

    Args:
        content: Raw Cargo.lock content.

    Returns:
        The name-to-versions mapping, or None if the content cannot be parsed.
    """
    try:
        packages = parse_lock_file_packages(content)
    except LockFileError as exc:
        logger.debug("Could not extract locked versions: %s", exc.message)
        return None

    versions: dict[str, list[str]] = {}
    for package in packages:
        name = package.get("name")
        version = package.get("version")
        if not isinstance(name, str) or not isinstance(version, str):
            continue
        versions.setdefault(name, []).append(version)
    return versions
