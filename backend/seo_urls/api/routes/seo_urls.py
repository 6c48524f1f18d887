"""SEO URL lookup and manual editing routes."""

import logging

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from seo_urls.api.deps import SeoUrlRepository
from seo_urls.api.routes.events import error_to_http
from seo_urls.exceptions import SeoUrlError
from seo_urls.models import SeoUrl

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/seo-urls", tags=["seo-urls"])


class SeoUrlResponse(BaseModel):
    """A stored SEO URL."""

    id: str
    route_name: str
    foreign_key: str | None = None
    sales_channel_id: str
    language_id: str
    path_info: str
    seo_path_info: str
    is_canonical: bool
    is_modified: bool
    is_deleted: bool
    updated_at: str | None = None

    @classmethod
    def from_model(cls, record: SeoUrl) -> "SeoUrlResponse":
        return cls(
            id=record.id,
            route_name=record.route_name,
            foreign_key=record.foreign_key,
            sales_channel_id=record.sales_channel_id,
            language_id=record.language_id,
            path_info=record.path_info,
            seo_path_info=record.seo_path_info,
            is_canonical=record.is_canonical,
            is_modified=record.is_modified,
            is_deleted=record.is_deleted,
            updated_at=record.updated_at.isoformat() if record.updated_at else None,
        )


class SeoUrlListResponse(BaseModel):
    """List of SEO URLs."""

    seo_urls: list[SeoUrlResponse]
    total: int


class ResolvedPathResponse(BaseModel):
    """Routing answer for a readable path."""

    path_info: str
    seo_path_info: str
    canonical_seo_path_info: str | None = None
    is_canonical: bool
    redirect: bool  # True when the request should be redirected to the canonical path


class UpdateSeoUrlRequest(BaseModel):
    """Manual edit of a SEO URL."""

    seo_path_info: str | None = None
    path_info: str | None = None
    is_modified: bool | None = None


@router.get("", response_model=SeoUrlListResponse)
async def list_seo_urls(
    repo: SeoUrlRepository,
    route_name: str = Query(..., description="Route to list SEO URLs for"),
    foreign_key: list[str] | None = Query(None),
    sales_channel_id: str | None = None,
    language_id: str | None = None,
    include_deleted: bool = False,
    include_history: bool = False,
) -> SeoUrlListResponse:
    """List SEO URLs of a route. Live canonical records only by default."""
    if include_deleted:
        records = await repo.find_all(route_name, foreign_key, sales_channel_id, language_id)
        if not include_history:
            records = [r for r in records if r.is_canonical]
    else:
        records = await repo.find_active(
            route_name, foreign_key, sales_channel_id, language_id, include_history=include_history
        )
    return SeoUrlListResponse(
        seo_urls=[SeoUrlResponse.from_model(r) for r in records],
        total=len(records),
    )


@router.get("/resolve", response_model=ResolvedPathResponse)
async def resolve_seo_path(
    repo: SeoUrlRepository,
    sales_channel_id: str,
    language_id: str,
    path: str = Query(..., description="Readable path, e.g. /beispiel-seite"),
) -> ResolvedPathResponse:
    """Resolve a readable path to its technical path."""
    record = await repo.resolve_path(sales_channel_id, language_id, path)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="SEO URL not found")

    canonical = record
    if not record.is_canonical:
        canonical = await repo.get_canonical(*record.key)

    return ResolvedPathResponse(
        path_info=record.path_info,
        seo_path_info=record.seo_path_info,
        canonical_seo_path_info=canonical.seo_path_info if canonical else None,
        is_canonical=record.is_canonical,
        redirect=canonical is not None and canonical.id != record.id,
    )


@router.patch("/{seo_url_id}", response_model=SeoUrlResponse)
async def update_seo_url(
    seo_url_id: str,
    request: UpdateSeoUrlRequest,
    repo: SeoUrlRepository,
) -> SeoUrlResponse:
    """Edit a SEO URL by hand.

    Changing a path marks the record as modified, which protects it from
    automatic regeneration. ``is_modified`` alone toggles that protection.
    """
    record = await repo.get_by_id(seo_url_id)
    if record is None or record.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="SEO URL not found")

    try:
        if request.seo_path_info is not None or request.path_info is not None:
            record = await repo.update_manual(
                record,
                seo_path_info=request.seo_path_info,
                path_info=request.path_info,
            )
            if request.is_modified is False:
                record = await repo.set_modified(record, False)
        elif request.is_modified is not None:
            record = await repo.set_modified(record, request.is_modified)
    except SeoUrlError as e:
        raise error_to_http(e) from e

    await repo.session.commit()
    logger.info(f"SEO URL {seo_url_id} edited: {record.seo_path_info} (modified={record.is_modified})")
    return SeoUrlResponse.from_model(record)
