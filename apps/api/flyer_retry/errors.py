"""Application exception types."""

from flyer_retry.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


class ReconciliationError(Exception):
    """Base class for failures raised by the reconciliation engine and its transports."""

    def __init__(self, code: str, message: str, *, status_code: int | None = None) -> None:
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class FetchError(ReconciliationError):
    """The job listing could not be fetched or parsed; the store is left unmodified."""


class RetryError(ReconciliationError):
    """A single retry request failed in transport or returned a non-success payload."""


class RetryAllError(ReconciliationError):
    """The bulk retry request failed; the store has been rebuilt from a fresh snapshot."""

    def __init__(self, code: str, message: str, *, status_code: int | None = None, reloaded: bool = False) -> None:
        super().__init__(code, message, status_code=status_code)
        self.reloaded = reloaded


__all__ = ["ApiError", "FetchError", "ReconciliationError", "RetryAllError", "RetryError"]
