"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel

from flyer_retry.schemas.flyer import CanonicalStatus


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class NoLeakNotFoundError(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str


class RetryStateConflictErrorDetails(BaseModel):
    current_status: CanonicalStatus


class RetryStateConflictError(BaseModel):
    code: Literal["RETRY_NOT_ALLOWED_STATE"]
    message: str
    details: RetryStateConflictErrorDetails


class UpstreamError(BaseModel):
    code: Literal["SNAPSHOT_FETCH_FAILED", "RETRY_ALL_FAILED"]
    message: str
    details: dict[str, Any] | None = None
