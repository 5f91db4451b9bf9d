"""Rewrite dependency requirements in a ``Cargo.toml`` without losing formatting."""

import logging
from collections.abc import Iterator
from typing import Any

from tomlkit.items import InlineTable, Table

from relock._utils.toml_utils import TomlError, dump_toml_with_tomlkit, parse_toml_with_tomlkit
from relock.artifacts.exceptions import ManifestBumpError
from relock.artifacts.models import Upgrade

logger = logging.getLogger(__name__)

DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")


def _dependency_tables(document: Any) -> Iterator[Any]:
    """Yield every dependency table of a manifest, including workspace and target-specific ones."""
    for table_name in DEPENDENCY_TABLES:
        if table_name in document:
            yield document[table_name]

    workspace = document.get("workspace")
    if workspace is not None and "dependencies" in workspace:
        yield workspace["dependencies"]

    targets = document.get("target")
    if targets is not None:
        for target in targets.values():
            for table_name in DEPENDENCY_TABLES:
                if table_name in target:
                    yield target[table_name]


def _bump_entry(table: Any, dep: Upgrade) -> bool:
    entry = table[dep.dep_name]
    if isinstance(entry, str):
        table[dep.dep_name] = dep.new_version
        return True
    if isinstance(entry, (InlineTable, Table)) and "version" in entry:
        entry["version"] = dep.new_version
        return True
    # Git and path dependencies have no version requirement to rewrite.
    return False


def bump_dependency_requirements(content: str, updated_deps: list[Upgrade]) -> str:
    """Set each upgraded dependency's requirement to its new version.

    Args:
        content: The current ``Cargo.toml`` content.
        updated_deps: The upgrades to write into the manifest.

    Returns:
        The new manifest content.

    Raises:
        ManifestBumpError: If the manifest is not valid TOML or an upgraded
            dependency is not declared anywhere in it.
    """
    try:
        document = parse_toml_with_tomlkit(content)
    except TomlError as exc:
        msg = f"Invalid TOML syntax in manifest: {exc.message}"
        raise ManifestBumpError(msg) from exc

    for dep in updated_deps:
        found = False
        for table in _dependency_tables(document):
            if dep.dep_name not in table:
                continue
            found = True
            if not _bump_entry(table, dep):
                logger.debug("Dependency '%s' has no version requirement, leaving it as is", dep.dep_name)
        if not found:
            msg = f"Dependency '{dep.dep_name}' is not declared in the manifest"
            raise ManifestBumpError(msg)

    return dump_toml_with_tomlkit(document)
