"""
Custom exceptions for zephyr-sync.

Store adapters raise these so the sync engine can tell a failed
store operation apart from a programming error.
"""


class ZephyrError(Exception):
    """Base exception for all zephyr-sync errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StoreIOError(ZephyrError):
    """Raised when a store read or write fails."""

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


class ValidationError(ZephyrError):
    """Raised when a key or value cannot be stored."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class EngineClosedError(ZephyrError):
    """Raised when work is submitted to an engine that has been closed."""

    def __init__(self, operation: str):
        super().__init__(f"Cannot {operation}: sync engine is closed", {"operation": operation})
        self.operation = operation
