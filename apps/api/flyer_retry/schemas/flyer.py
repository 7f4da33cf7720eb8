"""Flyer request schemas."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict


class CanonicalStatus(str, Enum):
    PENDING = "Pending"
    FAILED = "Failed"
    RETRYING = "Retrying"
    RETRY_SUCCESSFUL = "RetrySuccessful"


class FlyerRequestRow(BaseModel):
    """One row of the jobs-error listing, also carried by change-feed events."""

    model_config = ConfigDict(extra="ignore")

    request_id: str
    store_name: str | None = None
    date: str | None = None
    error_notes: str | None = None
    status: str | None = None


class RetryRequest(BaseModel):
    request_id: str


class RetryResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    response: str | None = None


class FlyerRequest(BaseModel):
    request_id: str
    store_name: str | None = None
    date: str | None = None
    error_notes: str | None = None
    status: CanonicalStatus


class FlyerRequestList(BaseModel):
    generation: int
    load_error: str | None = None
    items: list[FlyerRequest]


class RetryOneResponse(BaseModel):
    request_id: str
    status: CanonicalStatus | None = None
    stale: bool = False


class RetryAllResponse(BaseModel):
    accepted: Literal[True] = True
    retrying: int
