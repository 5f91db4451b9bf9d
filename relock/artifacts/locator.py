from pathlib import Path


def find_sibling_or_parent(manifest_path: Path, file_name: str, root: Path | None = None) -> Path | None:
    """Walk up from a manifest's directory to find the nearest ``file_name``.

    Standalone crates keep ``Cargo.lock`` next to ``Cargo.toml``; workspace
    members share the lock file of the workspace root further up.

    Stops at the first match, after checking ``root`` (when given), or at the
    top of the path: relative manifest paths never leave the current directory.

    Args:
        manifest_path: Path to the manifest file (e.g. ``crates/foo/Cargo.toml``).
        file_name: Name of the file to look for (e.g. ``Cargo.lock``).
        root: Optional directory beyond which the search does not go.

    Returns:
        The path of the nearest matching file, or None if there is none.
    """
    current = manifest_path.parent
    stop = root.resolve() if root is not None else None

    while True:
        candidate = current / file_name
        if candidate.is_file():
            return candidate

        if stop is not None and current.resolve() == stop:
            return None

        parent = current.parent
        if parent == current:
            return None

        current = parent
