"""
Error taxonomy for the derivative pipeline.

Each error carries the HTTP status it maps to so the API layer can turn
any pipeline failure into exactly one structured response without a
lookup table. None of these are retried internally.
"""

from typing import Optional


class DerivativeError(Exception):
    """Base class for failures the caller should see."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DerivativeError):
    """Missing or malformed request input."""

    status_code = 409


class ObjectNotFoundError(DerivativeError):
    """The source object does not exist in the blob store."""

    status_code = 404


class StorageError(DerivativeError):
    """Raised when fetch, upload or signing against the store fails."""

    status_code = 502


class TransformError(DerivativeError):
    """
    The external raster tool failed to launch, exited non-zero, or timed out.

    stderr is kept for server-side diagnostics.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        stderr: str = "",
        exit_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.exit_code = exit_code
