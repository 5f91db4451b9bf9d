"""Settings and git credentials for relock.

Reads and writes ``~/.relock/credentials`` using a dotenv-style format
(``KEY=VALUE``, ``#`` comments, blank lines allowed).

Resolution order: environment variables > credentials file > defaults.
"""

from __future__ import annotations

import os
from enum import unique
from pathlib import Path
from typing import NamedTuple
from urllib.parse import quote

from relock._compat import StrEnum
from relock.constants import DEFAULT_SANDBOX_IMAGE

# ── Types ───────────────────────────────────────────────────────────


@unique
class CredentialSource(StrEnum):
    ENV = "env"
    FILE = "file"
    DEFAULT = "default"


class CredentialEntry(NamedTuple):
    key: str
    cli_key: str
    value: str
    source: CredentialSource


# ── Paths ───────────────────────────────────────────────────────────

CONFIG_DIR = Path.home() / ".relock"
CREDENTIALS_PATH = CONFIG_DIR / "credentials"

# ── Credential keys ────────────────────────────────────────────────

# Map from internal key to credential key (env var name and file key share the same names)
_CREDENTIAL_KEYS: dict[str, str] = {
    "sandbox": "RELOCK_SANDBOX",
    "sandbox_image": "RELOCK_SANDBOX_IMAGE",
    "rust_constraint": "RELOCK_RUST_CONSTRAINT",
    "git_host": "RELOCK_GIT_HOST",
    "git_token": "RELOCK_GIT_TOKEN",
}

# Defaults
_DEFAULTS: dict[str, str] = {
    "sandbox": "0",
    "sandbox_image": DEFAULT_SANDBOX_IMAGE,
    "rust_constraint": "",
    "git_host": "github.com",
    "git_token": "",
}

# Map from CLI flag names (kebab-case) to internal keys
_KEY_ALIASES: dict[str, str] = {
    "sandbox": "sandbox",
    "sandbox-image": "sandbox_image",
    "rust-constraint": "rust_constraint",
    "git-host": "git_host",
    "git-token": "git_token",
}

VALID_KEYS: list[str] = list(_KEY_ALIASES.keys())

_SECRET_KEYS = frozenset({"git_token"})

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def resolve_key(cli_key: str) -> str | None:
    """Resolve a CLI flag name to an internal credential key."""
    return _KEY_ALIASES.get(cli_key)


def is_secret(key: str) -> bool:
    return key in _SECRET_KEYS


# ── Dotenv parser / serializer ─────────────────────────────────────


def _parse_dotenv(content: str) -> dict[str, str]:
    """Parse a dotenv-style string into a dict."""
    result: dict[str, str] = {}
    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        eq_index = trimmed.find("=")
        if eq_index == -1:
            continue
        key = trimmed[:eq_index].strip()
        value = trimmed[eq_index + 1 :].strip()
        result[key] = value
    return result


def _serialize_dotenv(entries: dict[str, str]) -> str:
    """Serialize a dict into dotenv format."""
    lines: list[str] = []
    for key, value in entries.items():
        lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n"


# ── File I/O ───────────────────────────────────────────────────────


def _read_credentials_file() -> dict[str, str]:
    if not CREDENTIALS_PATH.is_file():
        return {}
    try:
        return _parse_dotenv(CREDENTIALS_PATH.read_text(encoding="utf-8"))
    except OSError:
        return {}


def _write_credentials_file(entries: dict[str, str]) -> None:
    """Write the credentials file with restricted permissions (owner-only)."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    CREDENTIALS_PATH.write_text(_serialize_dotenv(entries), encoding="utf-8")
    CREDENTIALS_PATH.chmod(0o600)


# ── Public API ─────────────────────────────────────────────────────


def load_credentials() -> dict[str, str]:
    """Load all settings with resolution: env > file > defaults.

    Returns:
        A dict keyed by internal key (sandbox, sandbox_image, rust_constraint,
        git_host, git_token).
    """
    file_entries = _read_credentials_file()
    merged = dict(_DEFAULTS)

    for internal_key, file_key in _CREDENTIAL_KEYS.items():
        if file_key in file_entries:
            merged[internal_key] = file_entries[file_key]

    # Env vars take precedence
    for internal_key, env_name in _CREDENTIAL_KEYS.items():
        env_val = os.environ.get(env_name)
        if env_val is not None:
            merged[internal_key] = env_val

    return merged


def _cli_key_for(internal_key: str) -> str:
    """Reverse-lookup the CLI flag name for an internal key."""
    return next(cli_k for cli_k, int_k in _KEY_ALIASES.items() if int_k == internal_key)


def get_credential_value(key: str) -> CredentialEntry:
    """Get a single setting with its source.

    Args:
        key: Internal key (e.g. "sandbox", "git_token").

    Returns:
        A CredentialEntry with the value and its source.
    """
    cli_key = _cli_key_for(key)

    env_name = _CREDENTIAL_KEYS[key]
    env_val = os.environ.get(env_name)
    if env_val is not None:
        return CredentialEntry(key=key, cli_key=cli_key, value=env_val, source=CredentialSource.ENV)

    file_entries = _read_credentials_file()
    if env_name in file_entries:
        return CredentialEntry(key=key, cli_key=cli_key, value=file_entries[env_name], source=CredentialSource.FILE)

    return CredentialEntry(key=key, cli_key=cli_key, value=_DEFAULTS[key], source=CredentialSource.DEFAULT)


def set_credential_value(key: str, value: str) -> None:
    """Set a value in the credentials file.

    Args:
        key: Internal key (e.g. "sandbox", "git_token").
        value: The value to set.
    """
    file_entries = _read_credentials_file()
    file_entries[_CREDENTIAL_KEYS[key]] = value
    _write_credentials_file(file_entries)


def list_credentials() -> list[CredentialEntry]:
    """List all settings with their sources."""
    return [get_credential_value(internal_key) for internal_key in _KEY_ALIASES.values()]


def is_sandbox_enabled() -> bool:
    creds = load_credentials()
    return creds["sandbox"].strip().lower() in _TRUTHY


# ── Git environment ────────────────────────────────────────────────


def _insteadof_rules(host: str, token: str) -> list[tuple[str, str]]:
    """Build ``url.<authenticated>.insteadOf`` rewrites for every URL form of ``host``."""
    authenticated = f"https://x-access-token:{quote(token, safe='')}@{host}/"
    return [
        (f"url.{authenticated}.insteadOf", f"https://{host}/"),
        (f"url.{authenticated}.insteadOf", f"ssh://git@{host}/"),
        (f"url.{authenticated}.insteadOf", f"git@{host}:"),
    ]


def get_git_environment_variables() -> dict[str, str]:
    """Build git config environment variables that inject the configured token.

    Uses git's ``GIT_CONFIG_COUNT`` / ``GIT_CONFIG_KEY_<n>`` / ``GIT_CONFIG_VALUE_<n>``
    mechanism so that tools fetching with the git CLI (``cargo`` with
    ``net.git-fetch-with-cli``) authenticate against private repositories.
    Entries already present in the process environment are kept; new ones are
    numbered after them.

    Returns:
        The extra environment, or an empty dict when no token is configured.
    """
    creds = load_credentials()
    token = creds["git_token"]
    host = creds["git_host"].strip().strip("/")
    if not token or not host:
        return {}

    try:
        start = int(os.environ.get("GIT_CONFIG_COUNT", "0"))
    except ValueError:
        start = 0

    env: dict[str, str] = {}
    rules = _insteadof_rules(host, token)
    for offset, (config_key, config_value) in enumerate(rules):
        index = start + offset
        env[f"GIT_CONFIG_KEY_{index}"] = config_key
        env[f"GIT_CONFIG_VALUE_{index}"] = config_value
    env["GIT_CONFIG_COUNT"] = str(start + len(rules))
    return env
