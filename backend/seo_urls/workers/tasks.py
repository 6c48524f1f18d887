"""Celery task definitions.

These tasks are thin wrappers that run one reconciliation pass per message.
Failures are logged and re-raised; tasks never retry on their own.
"""

import asyncio
import logging
from typing import Any

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from seo_urls.config import get_settings
from seo_urls.events import EntityDeletedEvent, EntityWrittenEvent
from seo_urls.exceptions import SeoUrlError
from seo_urls.services.reconciler import SeoUrlReconciler
from seo_urls.services.scope import build_scope_resolver
from seo_urls.workers.celery_app import celery_app

settings = get_settings()
logger = logging.getLogger(__name__)

# Every task runs its own event loop, so connections must not be pooled across tasks
task_engine = create_async_engine(settings.database_url, poolclass=NullPool)
TaskSessionLocal = async_sessionmaker(task_engine, expire_on_commit=False)


async def _reconcile(event: EntityWrittenEvent | EntityDeletedEvent) -> dict[str, Any]:
    async with TaskSessionLocal() as session:
        resolver = build_scope_resolver(session, settings)
        reconciler = SeoUrlReconciler(session, resolver, settings=settings)
        result = await reconciler.handle(event)
    return result.to_dict()


@celery_app.task(soft_time_limit=60, time_limit=90)
def reconcile_entity_written(event: dict[str, Any]) -> dict[str, Any]:
    """Reconcile SEO URLs for an entity-written notification."""
    written = EntityWrittenEvent.model_validate(event)
    try:
        return asyncio.run(_reconcile(written))
    except SeoUrlError as e:
        logger.error(f"reconcile_entity_written failed for {written.entity_name}: {e}")
        raise


@celery_app.task(soft_time_limit=60, time_limit=90)
def reconcile_entity_deleted(event: dict[str, Any]) -> dict[str, Any]:
    """Soft-delete SEO URLs for an entity-deleted notification."""
    deleted = EntityDeletedEvent.model_validate(event)
    try:
        return asyncio.run(_reconcile(deleted))
    except SeoUrlError as e:
        logger.error(f"reconcile_entity_deleted failed for {deleted.entity_name}: {e}")
        raise
