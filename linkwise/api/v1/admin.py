"""Admin router: re-enrichment of links stuck with garbage titles."""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from linkwise.api.dependencies import get_db
from linkwise.core.auth import verify_internal_token
from linkwise.core.db import DatabaseHandle
from linkwise.models.schemas import ResetGarbageTitlesRequest, ResetGarbageTitlesResponse
from linkwise.tasks.enrich_links import reset_garbage_titles

logger = structlog.get_logger(__name__)
router = APIRouter(dependencies=[Depends(verify_internal_token)])


@router.post("/links/reset-garbage-titles", response_model=ResetGarbageTitlesResponse)
async def reset_garbage_link_titles(
    body: ResetGarbageTitlesRequest,
    db: DatabaseHandle = Depends(get_db),
):
    """Reset links whose stored title matches a blocked pattern back to pending."""
    if not db.is_configured:
        raise HTTPException(status_code=503, detail="Database not configured")
    try:
        summary = await reset_garbage_titles({"db": db}, batch_size=body.batch_size)
    except Exception:
        logger.exception("admin.reset_garbage_titles_failed")
        raise HTTPException(status_code=500, detail="Failed to reset garbage titles")
    return ResetGarbageTitlesResponse(**summary)
