# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownParameterType=false, reportUnknownArgumentType=false
"""Thin typed wrapper around semantic_version for Cargo version strings.

Cargo only accepts exact semver for ``--precise`` and records exact semver in
``Cargo.lock``, so anything that is not a full ``MAJOR.MINOR.PATCH`` version is
rejected here.

Note: semantic_version has no type stubs, so Pyright unknown-type checks are
disabled at file level for this wrapper module.
"""

from semantic_version import Version  # type: ignore[import-untyped]


class SemVerError(Exception):
    """Raised for semver parse failures."""


def parse_version(version_str: str) -> Version:
    """Parse a version string into a semantic_version.Version.

    Args:
        version_str: The version string to parse (e.g. "1.2.3" or "0.2.1+wasi").

    Returns:
        The parsed Version object.

    Raises:
        SemVerError: If the version string is not valid semver.
    """
    try:
        return Version(version_str)
    except ValueError as exc:
        msg = f"Invalid semver version: {version_str!r}"
        raise SemVerError(msg) from exc


def is_valid_semver(version_str: str) -> bool:
    try:
        parse_version(version_str)
    except SemVerError:
        return False
    return True


def newest_version(versions: list[str]) -> str | None:
    """Return the highest valid semver entry of ``versions``, ignoring invalid ones."""
    parsed = [(parse_version(version), version) for version in versions if is_valid_semver(version)]
    if not parsed:
        return None
    return max(parsed)[1]
