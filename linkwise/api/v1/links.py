"""Links router: canonicalization, enrichment and display titles."""

from dataclasses import asdict

import structlog
from fastapi import APIRouter, Depends

from linkwise.api.dependencies import get_canonicalizer, get_enrichment
from linkwise.core.auth import verify_internal_token
from linkwise.models.schemas import (
    CanonicalizeBatchRequest,
    CanonicalizeBatchResponse,
    CanonicalizeRequest,
    DisplayTitleRequest,
    DisplayTitleResponse,
    EnrichRequest,
    EnrichResponse,
    ResolutionResponse,
)
from linkwise.services.canonicalizer import Canonicalizer
from linkwise.services.enrichment import EnrichmentOrchestrator
from linkwise.services.enrichment_types import LinkToEnrich
from linkwise.services.title_utils import TitleableLink, get_display_title

logger = structlog.get_logger(__name__)
router = APIRouter(dependencies=[Depends(verify_internal_token)])


@router.post("/canonicalize", response_model=ResolutionResponse)
async def canonicalize_link(
    body: CanonicalizeRequest,
    canonicalizer: Canonicalizer = Depends(get_canonicalizer),
):
    """Resolve one URL. Always 200; degradation is reported through ``status``."""
    result = await canonicalizer.canonicalize(body.url)
    return ResolutionResponse(**asdict(result))


@router.post("/canonicalize/batch", response_model=CanonicalizeBatchResponse)
async def canonicalize_links(
    body: CanonicalizeBatchRequest,
    canonicalizer: Canonicalizer = Depends(get_canonicalizer),
):
    results = await canonicalizer.canonicalize_many(body.urls)
    return CanonicalizeBatchResponse(
        results=[ResolutionResponse(**asdict(r)) for r in results],
        total=len(results),
        failed=sum(1 for r in results if r.status == "failed"),
    )


@router.post("/enrich", response_model=EnrichResponse)
async def enrich_link(
    body: EnrichRequest,
    enrichment: EnrichmentOrchestrator = Depends(get_enrichment),
):
    """Run the title enrichment chain for one link. The returned title is never empty."""
    link = LinkToEnrich(
        id=body.id,
        canonical_url=body.canonical_url,
        domain=body.domain or "",
        title=body.title,
        description=body.description,
    )
    result = await enrichment.enrich(link)
    return EnrichResponse(**asdict(result))


@router.post("/display-title", response_model=DisplayTitleResponse)
async def display_title(body: DisplayTitleRequest):
    display = get_display_title(
        TitleableLink(
            canonical_url=body.canonical_url,
            title=body.title,
            fallback_title=body.fallback_title,
            domain=body.domain,
        )
    )
    return DisplayTitleResponse(title=display.title, source=display.source)
