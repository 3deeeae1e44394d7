"""
Custom exception classes for the application.

This module defines domain-specific exceptions that provide better error handling
and clearer error messages throughout the application.
"""


class ApplicationError(Exception):
    """Base exception for all application errors"""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ApplicationError):
    """Raised when there's a configuration issue"""

    def __init__(self, message: str, missing_keys: list[str] | None = None):
        details = {"missing_keys": missing_keys} if missing_keys else {}
        super().__init__(message, details)


class InvalidRequestError(ApplicationError):
    """Raised when a request is missing a required parameter or carries a bad value"""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, details)


class StorageUnavailableError(ApplicationError):
    """Raised when a signed URL cannot be issued or a blob transfer fails"""

    def __init__(self, operation: str, key: str | None = None, message: str | None = None):
        details = {"operation": operation}
        if key is not None:
            details["key"] = key
        msg = message or f"Storage operation '{operation}' failed"
        super().__init__(msg, details)


class TransformFailureError(ApplicationError):
    """Raised when the external transcoding tool fails or is killed at its deadline"""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        timed_out: bool = False,
        stderr_tail: str | None = None,
    ):
        self.returncode = returncode
        self.timed_out = timed_out
        details = {"returncode": returncode, "timed_out": timed_out}
        if stderr_tail:
            details["stderr_tail"] = stderr_tail
        super().__init__(message, details)


class JobAlreadyInFlightError(ApplicationError):
    """Raised when a transcode job is requested for a key that is already being processed"""

    def __init__(self, key: str):
        super().__init__(f"Transcode already in flight for {key}", {"key": key})
