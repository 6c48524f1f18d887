"""Dependency injection for FastAPI routes."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from seo_urls.config import Settings, get_settings
from seo_urls.database import get_db
from seo_urls.repositories import PostgresSeoUrlRepository
from seo_urls.services.reconciler import SeoUrlReconciler
from seo_urls.services.scope import ScopeResolver, build_scope_resolver

# Type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_scope_resolver(db: DbSession, settings: AppSettings) -> ScopeResolver:
    return build_scope_resolver(db, settings)


def get_reconciler(
    db: DbSession,
    settings: AppSettings,
    resolver: Annotated[ScopeResolver, Depends(get_scope_resolver)],
) -> SeoUrlReconciler:
    return SeoUrlReconciler(db, resolver, settings=settings)


def get_seo_url_repository(db: DbSession, settings: AppSettings) -> PostgresSeoUrlRepository:
    return PostgresSeoUrlRepository(db, conflict_policy=settings.seo_conflict_policy)


Reconciler = Annotated[SeoUrlReconciler, Depends(get_reconciler)]
SeoUrlRepository = Annotated[PostgresSeoUrlRepository, Depends(get_seo_url_repository)]
