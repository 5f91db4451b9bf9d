"""Shared constants for the relock engine."""

# Sentinel message for infrastructure failures that must never be retried
# or reported as an artifact error.
TEMPORARY_ERROR = "temporary-error"

MANIFEST_FILENAME = "Cargo.toml"
LOCK_FILENAME = "Cargo.lock"

# Primary registry datasource id; only upgrades from it can be precisely pinned.
CRATE_DATASOURCE = "crate"

DEFAULT_RECURSION_LIMIT = 10

DEFAULT_SANDBOX_IMAGE = "rust"
DEFAULT_TIMEOUT_SECONDS = 900
