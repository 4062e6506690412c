"""
Classification API Router
Handles HS code classification requests, job polling and recent items
"""
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from apps.api.dependencies import get_app_settings, get_dispatcher, get_job_store
from apps.api.tasks import ClassificationDispatcher
from packages.common.config import Settings
from packages.common.metrics import ADMISSION_REJECTIONS, CLASSIFICATION_JOBS_CREATED
from packages.common.schemas.hs_code_api import (
    ClassifyAccepted,
    ClassifyRejected,
    ClassifyRequest,
    ClassifyStatus,
)
from packages.domain.classification.admission import RejectionReason, validate_submission
from packages.domain.classification.job_store import ClassificationJobStore
from packages.domain.classification.schemas import RecentEntry

logger = structlog.get_logger()
router = APIRouter()


@router.post(
    "",
    response_model=ClassifyAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    responses={400: {"model": ClassifyRejected}},
)
async def classify_item(
    request: ClassifyRequest,
    settings: Settings = Depends(get_app_settings),
    store: ClassificationJobStore = Depends(get_job_store),
    dispatcher: ClassificationDispatcher = Depends(get_dispatcher),
):
    """
    Submit an item for HS code classification

    - **description**: at least 5 words / 25 characters, goods only
    - **imageBase64**: optional photo of the item
    - **requestId**: optional correlation id

    Returns a job ID immediately; poll `GET /classify/{jobId}` for the result.
    """
    admission = validate_submission(
        request.description,
        request.image_base64,
        min_image_bytes=settings.min_image_bytes,
    )

    if not admission.accepted:
        ADMISSION_REJECTIONS.labels(reason=admission.reason.value).inc()
        body = ClassifyRejected(
            status="needs_more_detail" if admission.reason == RejectionReason.NEEDS_MORE_DETAIL else "rejected",
            reason=admission.reason.value,
            message=admission.message,
            request_id=request.request_id,
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=body.model_dump(by_alias=True),
        )

    job = store.create_job(request.request_id)
    dispatcher.queue_classification(job.id, admission.description, admission.image_base64)
    CLASSIFICATION_JOBS_CREATED.inc()

    logger.info("classification_queued",
                job_id=job.id,
                request_id=request.request_id,
                has_image=admission.image_base64 is not None)

    return ClassifyAccepted(job_id=job.id, request_id=job.request_id)


@router.get("/recent", response_model=List[RecentEntry])
async def recent_items(store: ClassificationJobStore = Depends(get_job_store)):
    """Up to 10 recently classified items, most recent first"""
    return store.get_recent()


@router.get("/{job_id}", response_model=ClassifyStatus, response_model_exclude_none=True)
async def classification_status(
    job_id: str,
    store: ClassificationJobStore = Depends(get_job_store),
):
    """
    Poll a classification job

    Status is one of pending, completed (with result) or failed (with error).
    Jobs expire 30 minutes after creation.
    """
    job = store.try_get_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Scan job not found.",
        )

    return ClassifyStatus(
        job_id=job.id,
        request_id=job.request_id,
        status=job.status,
        result=job.result,
        error=job.error,
    )
