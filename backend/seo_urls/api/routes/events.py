"""Entity lifecycle notification endpoints.

Each request runs one reconciliation pass and returns its outcome.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status

from seo_urls.api.deps import Reconciler
from seo_urls.events import EntityDeletedEvent, EntityWrittenEvent
from seo_urls.exceptions import (
    ConflictError,
    ScopeResolutionError,
    SeoUrlError,
    SlugGenerationError,
    StoreTransactionError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


def error_to_http(error: SeoUrlError) -> HTTPException:
    """Map a reconciliation failure to an HTTP error."""
    if isinstance(error, ConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "conflict",
                "message": str(error),
                "seo_path_info": error.seo_path_info,
                "sales_channel_id": error.sales_channel_id,
                "language_id": error.language_id,
            },
        )
    if isinstance(error, SlugGenerationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "slug_generation", "message": str(error), "foreign_key": error.foreign_key},
        )
    if isinstance(error, ScopeResolutionError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "scope_resolution", "message": str(error)},
        )
    if isinstance(error, StoreTransactionError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "store_transaction", "message": str(error)},
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


@router.post("/entity-written")
async def entity_written(event: EntityWrittenEvent, reconciler: Reconciler) -> dict[str, Any]:
    """Regenerate SEO URLs for created or updated entities."""
    try:
        result = await reconciler.handle_written(event)
    except SeoUrlError as e:
        raise error_to_http(e) from e
    return result.to_dict()


@router.post("/entity-deleted")
async def entity_deleted(event: EntityDeletedEvent, reconciler: Reconciler) -> dict[str, Any]:
    """Soft-delete SEO URLs of deleted entities."""
    try:
        result = await reconciler.handle_deleted(event)
    except SeoUrlError as e:
        raise error_to_http(e) from e
    return result.to_dict()
