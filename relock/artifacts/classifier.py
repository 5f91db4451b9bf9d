from relock._compat import StrEnum
from relock.artifacts.exceptions import ExecutionError
from relock.artifacts.signatures import RECOVERABLE_SIGNATURES, matches_signature
from relock.constants import TEMPORARY_ERROR


class FailureKind(StrEnum):
    FATAL = "fatal"
    RECOVERABLE = "recoverable"
    TERMINAL = "terminal"


def classify_failure(error: ExecutionError) -> FailureKind:
    """Sort a resolver failure into fatal, recoverable or terminal.

    Fatal failures carry the temporary-error sentinel and are re-raised by the
    engine. Recoverable failures match a recoverable signature in their stderr
    and may be retried with a narrowed request, whatever other signatures also
    match. Everything else ends up as an artifact error.
    """
    if error.message == TEMPORARY_ERROR:
        return FailureKind.FATAL
    if any(matches_signature(signature, error.stderr) for signature in RECOVERABLE_SIGNATURES):
        return FailureKind.RECOVERABLE
    return FailureKind.TERMINAL
