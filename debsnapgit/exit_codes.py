"""
Standard exit codes and error types for debsnapgit.

Following Unix/POSIX conventions for command-line tools. Every failure of
the snapshot pipeline is an ArchiveError subclass carrying the exit code
the CLI terminates with.
"""
from datetime import datetime
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
API_ERROR = 65           # Snapshot archive answered something unexpected
CONFIG_ERROR = 66        # Configuration file error
NETWORK_ERROR = 68       # Network connection failed
DATA_ERROR = 70          # Package index could not be parsed
STORAGE_ERROR = 72       # Working tree or git operation failed
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)


def exit_with_code(code: int, message: Optional[str] = None):
    """
    Exit with a specific code and optional message.

    Args:
        code: Exit code
        message: Optional message to print to stderr
    """
    import sys
    if message:
        print(message, file=sys.stderr)
    sys.exit(code)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class ArchiveError(CommandError):
    """
    Base class for failures while archiving a snapshot.

    Carries the operation that failed and, where known, the snapshot
    instant and the URL or path involved, so the message alone is enough
    to diagnose an unattended run.
    """
    exit_code_default = GENERAL_ERROR

    def __init__(
        self,
        message: str,
        operation: str = "",
        instant: Optional[datetime] = None,
        path: Optional[str] = None,
    ):
        self.operation = operation
        self.instant = instant
        self.path = path
        super().__init__(self._describe(message), self.exit_code_default)

    def _describe(self, message: str) -> str:
        context = []
        if self.operation:
            context.append(self.operation)
        if self.instant is not None:
            context.append(self.instant.strftime('%Y%m%dT%H%M%SZ'))
        if self.path:
            context.append(self.path)
        if not context:
            return message
        return f"{' '.join(context)}: {message}"


class TransientNetworkError(ArchiveError):
    """Connection, DNS or timeout failure talking to the archive."""
    exit_code_default = NETWORK_ERROR


class ArchiveProtocolError(ArchiveError):
    """Unexpected status code or a missing/unparseable redirect target."""
    exit_code_default = API_ERROR


class MissingIndexError(ArchiveError):
    """The archive did not serve the requested package index."""
    exit_code_default = API_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        self.status_code = status_code
        super().__init__(message, **kwargs)


class IndexParseError(ArchiveError):
    """The package index is malformed."""
    exit_code_default = DATA_ERROR


class MaterializationError(ArchiveError):
    """Writing the working tree or committing it failed."""
    exit_code_default = STORAGE_ERROR
