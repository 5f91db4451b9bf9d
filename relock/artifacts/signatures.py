"""Named resolver failure signatures.

Each signature is a set of patterns matched against a failing command's
standard error. New resolver message formats are added to ``_PATTERNS``.
"""

import re

from relock._compat import StrEnum


class FailureSignature(StrEnum):
    # Requirements cannot be satisfied together; retrying does not help.
    VERSION_SELECTION_FAILED = "version_selection_failed"
    # A ``--package name@version`` spec no longer matches the lock file,
    # typically because an earlier command in the batch already moved it.
    PACKAGE_ID_SPEC_NOT_FOUND = "package_id_spec_not_found"


_PATTERNS: dict[FailureSignature, tuple[re.Pattern[str], ...]] = {
    FailureSignature.VERSION_SELECTION_FAILED: (re.compile(r"error: failed to select a version for"),),
    FailureSignature.PACKAGE_ID_SPEC_NOT_FOUND: (re.compile(r"error: package ID specification"),),
}

RECOVERABLE_SIGNATURES: frozenset[FailureSignature] = frozenset({FailureSignature.PACKAGE_ID_SPEC_NOT_FOUND})


def matches_signature(signature: FailureSignature, text: str | None) -> bool:
    if not text:
        return False
    return any(pattern.search(text) for pattern in _PATTERNS[signature])


def matching_signatures(text: str | None) -> list[FailureSignature]:
    """Return every signature whose patterns match ``text``."""
    return [signature for signature in FailureSignature if matches_signature(signature, text)]
