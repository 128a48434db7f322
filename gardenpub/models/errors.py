"""Exception types raised inside the publishing subsystem."""

from __future__ import annotations


class GardenPublishError(Exception):
    """Base class for errors raised while preparing or delivering garden content."""


class ConfigurationError(GardenPublishError):
    """Raised when a setting required for a remote operation is missing."""


class RemoteNotFoundError(GardenPublishError):
    """Raised when the remote repository has no file at the requested path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Remote file '{path}' does not exist")
        self.path = path


class RemoteStoreError(GardenPublishError):
    """Raised when the remote repository rejects or fails a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PublishTimeoutError(GardenPublishError):
    """Raised when a network or disk operation does not finish within its deadline."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"{operation} did not complete within {timeout:g}s")
        self.operation = operation
        self.timeout = timeout
