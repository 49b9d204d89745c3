"""
Error handling for the Mailway configuration store.

Every failure raised by the loader, merger, writer and watcher is a
ConfigError carrying a structured code, so callers (and the CLI) can decide
whether a failure is fatal without parsing messages.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """
    Error codes for the configuration store.

    Ranges:
    - 1000-1099: Parse/decode errors
    - 1100-1199: Configuration errors
    - 1200-1299: File system errors
    - 1500-1599: State errors
    """

    INVALID_PARAMS = -32602

    # Parse errors (1000-1099)
    SYNTAX_ERROR = 1001
    SCHEMA_ERROR = 1003

    # Configuration errors (1100-1199)
    CONFIG_LOAD_FAILED = 1100
    UNRECOGNIZED_VALUE = 1107

    # File system errors (1200-1299)
    FILE_READ_ERROR = 1201
    FILE_WRITE_ERROR = 1202
    DIRECTORY_NOT_FOUND = 1203

    # State errors (1500-1599)
    DAEMON_NOT_INITIALIZED = 1500
    FILE_WATCHER_FAILED = 1502


class ConfigError(Exception):
    """Base exception for configuration store errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional context for debugging
        """
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for diagnostics output.

        Returns:
            Error dictionary with code, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "message": self.message
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result


class ConfigIOError(ConfigError):
    """Directory or fragment file could not be listed, read or written."""

    def __init__(self, path: str, reason: str, code: ErrorCode = ErrorCode.FILE_READ_ERROR):
        """
        Initialize I/O error.

        Args:
            path: File or directory involved
            reason: Reason for failure
            code: FILE_READ_ERROR, FILE_WRITE_ERROR or DIRECTORY_NOT_FOUND
        """
        if code == ErrorCode.FILE_WRITE_ERROR:
            message = f"Could not write {path}: {reason}"
            suggestion = "Check directory permissions and free space"
        else:
            message = f"Could not read {path}: {reason}"
            suggestion = "Check that the directory exists and is readable"

        super().__init__(
            code=code,
            message=message,
            suggestion=suggestion,
            context={"path": path, "reason": reason}
        )


class ConfigParseError(ConfigError):
    """Fragment content is malformed or a value does not match its field type."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SYNTAX_ERROR,
        line_number: Optional[int] = None,
        fields: Optional[list] = None
    ):
        """
        Initialize parse error.

        Args:
            message: Error message
            code: SYNTAX_ERROR for YAML errors, SCHEMA_ERROR for type mismatches
            line_number: Line in the concatenated stream, when known
            fields: Offending field names for type mismatches
        """
        context = {}
        if line_number:
            context["line_number"] = line_number
        if fields:
            context["fields"] = fields

        super().__init__(
            code=code,
            message=message,
            suggestion="Fix the fragment syntax; the previous configuration stays active",
            context=context
        )


class SubscriptionError(ConfigError):
    """Filesystem watch could not be set up or broke while running."""

    def __init__(self, path: str, reason: str):
        """
        Initialize subscription error.

        Args:
            path: Watched directory
            reason: Reason for failure
        """
        super().__init__(
            code=ErrorCode.FILE_WATCHER_FAILED,
            message=f"Failed to watch {path}: {reason}",
            suggestion="Configuration changes will not be picked up until restart",
            context={"path": path, "reason": reason}
        )


class UnrecognizedValueError(ConfigError):
    """A log level or log format token is not one of the known values."""

    def __init__(self, field: str, value: str, allowed: list):
        """
        Initialize unrecognized value error.

        Args:
            field: Field name (log_level or log_format)
            value: Offending token
            allowed: Accepted tokens
        """
        super().__init__(
            code=ErrorCode.UNRECOGNIZED_VALUE,
            message=f"unknown {field.replace('_', ' ')}: '{value}'",
            suggestion=f"Use one of: {', '.join(allowed)}",
            context={"field": field, "value": value, "allowed": allowed}
        )
