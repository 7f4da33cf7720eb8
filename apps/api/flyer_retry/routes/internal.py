"""Internal change-feed webhook routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from flyer_retry.core.logging_safety import safe_log_identifier
from flyer_retry.routes.dependencies import get_request_correlation_id, get_session, require_callback_secret
from flyer_retry.schemas.error import ErrorResponse
from flyer_retry.schemas.feed import ChangeEvent, ChangeEventAccepted
from flyer_retry.services.session import RetrySession

router = APIRouter(prefix="/internal", tags=["Internal"])
logger = logging.getLogger(__name__)


@router.post(
    "/change-feed",
    response_model=ChangeEventAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses={401: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def post_change_event(
    payload: ChangeEvent,
    __: Annotated[None, Depends(require_callback_secret)],
    session: Annotated[RetrySession, Depends(get_session)],
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
) -> ChangeEventAccepted:
    delivered = await session.feed.publish(payload.table, payload.model_dump(mode="json"))
    logger.info(
        "feed.published correlation_id=%s table=%s type=%s delivered=%s",
        safe_log_identifier(correlation_id, prefix="cid"),
        payload.table,
        payload.type,
        delivered,
    )
    return ChangeEventAccepted(published=delivered > 0)
