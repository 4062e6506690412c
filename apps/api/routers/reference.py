"""
Reference API Router
Reload, code lookup and free-text search over the HS code reference table
"""
import asyncio

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from apps.api.dependencies import get_reference_index
from packages.common.schemas.hs_code_api import (
    ReferenceReloadResponse,
    ReferenceRowResponse,
    ReferenceSearchRequest,
    ReferenceSearchResponse,
)
from packages.domain.classification.reference_index import ReferenceIndex

logger = structlog.get_logger()
router = APIRouter()


@router.post("/reload", response_model=ReferenceReloadResponse)
async def reload_reference(index: ReferenceIndex = Depends(get_reference_index)):
    """
    Force a re-read of the reference spreadsheet

    Returns 400 with a diagnostic message if the file is missing or malformed.
    """
    result = await asyncio.to_thread(index.reload)

    logger.info("reference_reload_requested",
                loaded=result.loaded,
                rows=result.row_count,
                message=result.message)

    body = ReferenceReloadResponse(
        status="ok" if result.loaded else "error",
        message=result.message,
        rows=result.row_count,
    )
    if not result.loaded:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=body.model_dump(by_alias=True),
        )
    return body


@router.post("/search", response_model=ReferenceSearchResponse)
async def search_reference(
    request: ReferenceSearchRequest,
    index: ReferenceIndex = Depends(get_reference_index),
):
    """
    Rank reference rows against free text or a partial code

    - **query**: required
    - **topK**: default 5, max 50
    """
    query = (request.query or "").strip()
    if not query:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"status": "error", "message": "Query is required."},
        )

    result = await asyncio.to_thread(index.search, query, request.top_k)
    return ReferenceSearchResponse(total=result.total, rows=result.rows, note=result.note)


@router.get("/{code}", response_model=ReferenceRowResponse)
async def lookup_reference(
    code: str,
    index: ReferenceIndex = Depends(get_reference_index),
):
    """Reference row for an HS code (exact, then most specific 6/8/10-digit prefix match)"""
    columns = await asyncio.to_thread(index.lookup_by_code, code)
    if columns is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"status": "not_found", "message": "No row found for the provided HS code."},
        )

    return ReferenceRowResponse(columns=columns)
