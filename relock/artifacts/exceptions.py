class RelockError(Exception):
    """Base exception for all relock errors."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class ManifestWriteError(RelockError):
    """Raised when the updated manifest cannot be written to disk."""


class ManifestBumpError(RelockError):
    """Raised when a dependency requirement cannot be rewritten in a manifest."""


class LockFileError(RelockError):
    """Raised when lock file content cannot be parsed."""


class ExecutionError(RelockError):
    """Raised when a resolver command fails.

    ``message`` is a one-line summary; ``stderr`` holds the raw standard error
    of the failing command and is what failure signatures are matched against.
    """

    def __init__(
        self,
        message: str = "",
        *,
        stderr: str = "",
        stdout: str = "",
        exit_code: int | None = None,
        command: str | None = None,
    ) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.stdout = stdout
        self.exit_code = exit_code
        self.command = command
