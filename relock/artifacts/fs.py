"""Working-tree file access for manifests and lock files."""

import logging
from pathlib import Path

from relock.artifacts.exceptions import ManifestWriteError

logger = logging.getLogger(__name__)


def read_local_file(path: Path) -> str | None:
    """Read a text file from the working tree.

    Returns:
        The file content, or None if the file is missing or unreadable.
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Could not read '%s': %s", path, exc)
        return None


def write_local_file(path: Path, content: str) -> None:
    """Overwrite a file on the working tree with ``content``.

    Raises:
        ManifestWriteError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        msg = f"Failed to write '{path}': {exc}"
        raise ManifestWriteError(msg) from exc
