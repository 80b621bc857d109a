"""Admin API endpoints: catalog promotion and the Opik review queue."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from httpx import HTTPError

from src.api.dependencies import DbSession, get_opik_spans_client, require_admin
from src.schemas.admin import (
    MarkReviewedRequest,
    MarkReviewedResponse,
    NextSpanResponse,
    PromoteRequest,
    PromoteResponse,
    UnrecognizedListResponse,
    UnrecognizedSummary,
)
from src.services import catalog_service
from src.services.errors import ProviderNetworkError
from src.services.opik_spans import OpikApiError, OpikSpansClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])

AdminUser = Annotated[str, Depends(require_admin)]
SpansClient = Annotated[OpikSpansClient, Depends(get_opik_spans_client)]


async def _try_mark_reviewed(spans: OpikSpansClient, span_id: str) -> bool:
    """Tag a span as reviewed; failures are logged and reported as False."""
    try:
        return await spans.mark_span_as_reviewed(span_id)
    except (OpikApiError, HTTPError, ValueError) as e:
        logger.error(f"Failed to tag span {span_id} as reviewed: {e!r}")
        return False


@router.post("/ingredients/promote", response_model=PromoteResponse)
async def promote_ingredients(
    body: PromoteRequest, admin_id: AdminUser, db: DbSession, spans: SpansClient
):
    """Add unrecognized names to the ingredient catalog."""
    result = catalog_service.promote_ingredients(
        db, [(p.name, p.category.value) for p in body.promotions]
    )
    span_tagged = False
    if body.span_id:
        span_tagged = await _try_mark_reviewed(spans, body.span_id)

    logger.info(f"Admin {admin_id} promoted {result.promoted} ingredients")
    return PromoteResponse(
        promoted=result.promoted,
        skipped=result.skipped,
        resolved=result.resolved,
        span_tagged=span_tagged,
    )


@router.get("/spans/next", response_model=NextSpanResponse)
async def next_span(admin_id: AdminUser, db: DbSession, spans: SpansClient):
    """Fetch the newest unreviewed span and the names in it not yet in the catalog.

    Spans with nothing left to promote are tagged reviewed and skipped.
    """
    try:
        span = await spans.get_next_unprocessed_span()
    except (OpikApiError, HTTPError) as e:
        logger.error(f"Failed to fetch next span: {e!r}")
        raise ProviderNetworkError("Failed to fetch spans") from e

    if span is None:
        return NextSpanResponse()

    metadata = span.get("metadata") or {}
    raw_items = metadata.get("unrecognized") or []
    total = metadata.get("totalUnrecognized", len(raw_items))
    items = list(
        dict.fromkeys(
            item.strip().lower() for item in raw_items if isinstance(item, str) and item.strip()
        )
    )
    existing = catalog_service.existing_ingredient_names(db, items)
    new_items = [item for item in items if item not in existing]

    if not new_items:
        logger.info(f"Span {span['id']} has nothing left to promote, marking reviewed")
        await _try_mark_reviewed(spans, span["id"])
        return NextSpanResponse(total_in_span=total)

    return NextSpanResponse(
        span_id=span["id"],
        trace_id=span.get("trace_id"),
        items=new_items,
        total_in_span=total,
    )


@router.post("/spans/mark-reviewed", response_model=MarkReviewedResponse)
async def mark_reviewed(body: MarkReviewedRequest, admin_id: AdminUser, spans: SpansClient):
    try:
        span_tagged = await spans.mark_span_as_reviewed(body.span_id)
    except (OpikApiError, HTTPError) as e:
        logger.error(f"Failed to mark span {body.span_id} as reviewed: {e!r}")
        raise ProviderNetworkError("Failed to mark span as reviewed") from e
    return MarkReviewedResponse(span_tagged=span_tagged)


@router.get("/unrecognized", response_model=UnrecognizedListResponse)
def list_unrecognized(admin_id: AdminUser, db: DbSession):
    """Unresolved unrecognized names across users, most common first."""
    rows = catalog_service.list_unresolved_unrecognized(db)
    return UnrecognizedListResponse(
        items=[UnrecognizedSummary(raw_text=text, user_count=count) for text, count in rows],
        count=len(rows),
    )
