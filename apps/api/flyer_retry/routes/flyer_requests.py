"""Flyer request console routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from flyer_retry.core.logging_safety import safe_log_identifier
from flyer_retry.errors import ApiError, FetchError, RetryAllError
from flyer_retry.routes.dependencies import get_request_correlation_id, get_session
from flyer_retry.schemas.error import NoLeakNotFoundError, RetryStateConflictError, UpstreamError
from flyer_retry.schemas.flyer import (
    FlyerRequest,
    FlyerRequestList,
    RetryAllResponse,
    RetryOneResponse,
)
from flyer_retry.services.session import RetrySession

router = APIRouter(prefix="/flyer-requests", tags=["Flyer Requests"])
logger = logging.getLogger(__name__)


def _render(session: RetrySession) -> FlyerRequestList:
    snapshot = session.store.snapshot()
    load_error = session.loader.last_error
    return FlyerRequestList(
        generation=snapshot.generation,
        load_error=str(load_error) if load_error is not None else None,
        items=[
            FlyerRequest(
                request_id=record.request_id,
                store_name=record.store_name,
                date=record.date,
                error_notes=record.error_notes,
                status=snapshot.statuses[record.request_id],
            )
            for record in snapshot.records
        ],
    )


@router.get("", response_model=FlyerRequestList)
async def list_flyer_requests(
    session: Annotated[RetrySession, Depends(get_session)],
) -> FlyerRequestList:
    return _render(session)


@router.post(
    "/reload",
    response_model=FlyerRequestList,
    responses={502: {"model": UpstreamError}},
)
async def reload_flyer_requests(
    session: Annotated[RetrySession, Depends(get_session)],
) -> FlyerRequestList:
    try:
        await session.loader.load()
    except FetchError as exc:
        raise ApiError(
            status_code=502,
            code="SNAPSHOT_FETCH_FAILED",
            message="Failed to load flyer requests",
            details={"reason": exc.code},
        ) from exc
    return _render(session)


@router.post(
    "/retry-all",
    response_model=RetryAllResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={502: {"model": UpstreamError}},
)
async def retry_all_flyer_requests(
    session: Annotated[RetrySession, Depends(get_session)],
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
) -> RetryAllResponse:
    safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")
    try:
        retrying = await session.coordinator.retry_all()
    except RetryAllError as exc:
        logger.warning(
            "retry_all.rejected correlation_id=%s code=%s reloaded=%s",
            safe_correlation_id,
            exc.code,
            exc.reloaded,
        )
        raise ApiError(
            status_code=502,
            code="RETRY_ALL_FAILED",
            message="Retry-all failed; flyer requests were reloaded",
            details={"reloaded": exc.reloaded},
        ) from exc
    return RetryAllResponse(retrying=retrying)


@router.post(
    "/{requestId}/retry",
    response_model=RetryOneResponse,
    responses={
        404: {"model": NoLeakNotFoundError},
        409: {"model": RetryStateConflictError},
    },
)
async def retry_flyer_request(
    request_id: Annotated[str, Path(alias="requestId")],
    session: Annotated[RetrySession, Depends(get_session)],
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
) -> RetryOneResponse:
    current_status = session.store.get_status(request_id)
    if current_status is None:
        raise ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")
    if not session.coordinator.can_retry(request_id):
        logger.info(
            "retry.rejected correlation_id=%s request_id=%s code=RETRY_NOT_ALLOWED_STATE current_status=%s",
            safe_log_identifier(correlation_id, prefix="cid"),
            safe_log_identifier(request_id, prefix="rid"),
            current_status.value,
        )
        raise ApiError(
            status_code=409,
            code="RETRY_NOT_ALLOWED_STATE",
            message="Flyer request cannot be retried in its current state",
            details={"current_status": current_status.value},
        )

    settled = await session.coordinator.retry_one(request_id)
    return RetryOneResponse(request_id=request_id, status=settled, stale=settled is None)
