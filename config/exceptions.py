"""Custom exception hierarchy for Link Monitor.

Provides specific exceptions for different error categories,
enabling better error handling and debugging.
"""

from typing import Optional


class LinkMonitorError(Exception):
    """Base exception for all Link Monitor errors.

    All custom exceptions in this application should inherit from this class.
    This allows catching all application-specific errors with a single except clause.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class StorageError(LinkMonitorError):
    """Data persistence errors.

    Raised when there are issues with:
    - Database reads or writes
    - Unknown record kinds
    - File permissions

    Examples:
        >>> raise StorageError("Failed to insert ping sample", {"table": "pings"})
    """

    pass


class ConfigurationError(LinkMonitorError):
    """Settings and configuration errors.

    Raised when there are issues with:
    - Invalid configuration values
    - Configuration file parsing

    Examples:
        >>> raise ConfigurationError("Invalid speedtest interval", {"value": -10})
    """

    pass


class SubprocessError(LinkMonitorError):
    """Subprocess execution errors.

    Raised when there are issues with:
    - Command execution failures
    - Timeouts
    - Permission denied
    - Command not found

    Attributes:
        command: The command that failed.
        returncode: Exit code if available.
        stdout: Standard output if available.
        stderr: Standard error if available.

    Examples:
        >>> raise SubprocessError(
        ...     "Command failed",
        ...     details={"command": ["speedtest-cli", "--csv"], "returncode": 1}
        ... )
    """

    def __init__(
        self,
        message: str,
        command: Optional[list] = None,
        returncode: Optional[int] = None,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        details = details or {}
        if command:
            details["command"] = command
        if returncode is not None:
            details["returncode"] = returncode
        if stdout:
            details["stdout"] = stdout[:500]  # Truncate long output
        if stderr:
            details["stderr"] = stderr[:500]

        super().__init__(message, details)
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class ProbeError(LinkMonitorError):
    """Reachability probe errors.

    Raised when the ping subprocess cannot be launched or its output
    stream fails.
    """

    pass


class SpeedtestParseError(LinkMonitorError):
    """Bandwidth probe output could not be parsed.

    Attributes:
        output: The raw output that failed to parse (truncated in details).
    """

    def __init__(self, message: str, output: Optional[str] = None):
        details = {"output": output[:500]} if output else None
        super().__init__(message, details)
        self.output = output
