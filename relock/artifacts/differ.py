from relock._compat import StrEnum


class LockDiff(StrEnum):
    UNCHANGED = "unchanged"
    CHANGED = "changed"


def diff_lock_file(before: str, after: str) -> LockDiff:
    """Compare lock file content from before and after a resolver run."""
    if before == after:
        return LockDiff.UNCHANGED
    return LockDiff.CHANGED
