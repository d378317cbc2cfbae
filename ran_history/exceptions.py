"""
Custom exceptions for the command history.

Store, indexer and query code raise these exceptions so callers
can handle failures consistently. Malformed transcript lines are not
exceptions: the parser reports them as SkippedLine values.
"""


class HistoryError(Exception):
    """Base exception for all command history errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StoreIOError(HistoryError):
    """Raised when the backing store cannot be read or written."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Store I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class DuplicateCommandError(HistoryError):
    """Raised when an insert with ConflictPolicy.ABORT hits an existing tool_use_id."""

    def __init__(self, tool_use_id: str):
        super().__init__(
            f"Command already recorded: {tool_use_id}", {"tool_use_id": tool_use_id}
        )
        self.tool_use_id = tool_use_id


class PatternError(HistoryError):
    """Raised when a search pattern is not a valid regular expression."""

    def __init__(self, pattern: str, cause: Exception | None = None):
        details = {"pattern": pattern}
        if cause:
            details["cause"] = str(cause)
        message = f"Invalid regular expression: {pattern!r}"
        if cause:
            message += f" ({cause})"
        super().__init__(message, details)
        self.pattern = pattern
        self.cause = cause


class FileScanError(HistoryError):
    """Raised when one transcript file cannot be read during an indexing pass."""

    def __init__(self, path: str, cause: Exception | None = None):
        details = {"path": path}
        if cause:
            details["cause"] = str(cause)
        message = f"Failed to scan transcript: {path}"
        if cause:
            message += f" ({cause})"
        super().__init__(message, details)
        self.path = path
        self.cause = cause


class ConfigError(HistoryError):
    """Raised when configuration is invalid or cannot be loaded."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Invalid configuration for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value
