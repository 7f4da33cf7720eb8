"""Change-feed event schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel, ConfigDict


class ChangeEvent(BaseModel):
    """Row-level change notification for the flyer requests table."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["INSERT", "UPDATE", "DELETE"]
    table: str
    record: dict[str, Any] | None = None
    old_record: dict[str, Any] | None = None


class ChangeEventAccepted(BaseModel):
    published: bool
