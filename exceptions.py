"""
Exceptions for the CyberShield security monitor
"""


class MonitorError(Exception):
    """Base exception for the security monitor"""


class ConfigError(MonitorError):
    """Raised when a configuration value is invalid"""


class RequestParseError(MonitorError):
    """Raised when an inbound request descriptor cannot be parsed"""


class StorageError(MonitorError):
    """Raised when a read or write against the threat store fails"""

    def __init__(self, operation: str, cause: Exception = None):
        self.operation = operation
        self.cause = cause
        message = f"Storage operation failed: {operation}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)
