from __future__ import annotations

import sys
from typing import Any

import tomlkit
from tomlkit.exceptions import ParseError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[no-redef]


class TomlError(Exception):
    def __init__(self, message: str, lineno: int = 0, colno: int = 0):
        super().__init__(message)
        self.message = message
        self.lineno = lineno
        self.colno = colno

    @classmethod
    def from_decode_error(cls, exc: Exception) -> TomlError:
        """Build from a tomllib/tomli TOMLDecodeError."""
        return cls(
            message=str(getattr(exc, "msg", str(exc))),
            lineno=int(getattr(exc, "lineno", 0)),
            colno=int(getattr(exc, "colno", 0)),
        )


def load_toml_from_content(content: str) -> dict[str, Any]:
    """Load TOML from content string."""
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        raise TomlError.from_decode_error(exc) from exc


def parse_toml_with_tomlkit(content: str) -> tomlkit.TOMLDocument:
    """Parse TOML content with tomlkit to preserve formatting and comments.

    Raises:
        TomlError: If the content is not valid TOML
    """
    try:
        return tomlkit.parse(content)
    except ParseError as exc:
        raise TomlError(message=str(exc), lineno=exc.line, colno=exc.col) from exc


def dump_toml_with_tomlkit(document: tomlkit.TOMLDocument) -> str:
    """Serialize a tomlkit document back to text, byte-for-byte where untouched."""
    return tomlkit.dumps(document)  # type: ignore[arg-type]
