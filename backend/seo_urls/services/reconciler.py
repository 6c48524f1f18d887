"""SEO URL reconciliation.

Turns entity write/delete notifications into SEO URL store changes. One
notification is one batch. Scopes and candidates are computed first; the
store then applies the whole batch in a single transaction, so a failure at
any step leaves nothing behind. The reconciler owns its session.

Empty slugs fail the whole batch; there are no per-entity sub-transactions.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Literal
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from seo_urls.config import Settings, get_settings
from seo_urls.events import EntityDeletedEvent, EntityWrittenEvent
from seo_urls.exceptions import SeoUrlError, SlugGenerationError, StoreTransactionError
from seo_urls.repositories import PostgresSeoUrlRepository, SeoUrlCandidate
from seo_urls.route_config import RouteRegistry, SeoUrlRoute
from seo_urls.services.locks import KeyLockRegistry
from seo_urls.services.scope import ScopeResolver, SeoScope, resolve_scopes
from seo_urls.services.slugify import build_seo_path, slugify
from seo_urls.static_routes import get_route_registry

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    """Outcome of one successful (or skipped) batch."""

    batch_id: str
    entity_name: str
    operation: Literal["written", "deleted"]
    status: Literal["succeeded", "skipped"] = "succeeded"
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped_modified: int = 0
    skipped_without_name: int = 0
    deleted: int = 0
    suffixed_paths: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class SeoUrlReconciler:
    """Keeps SEO URLs in step with entity writes and deletes."""

    def __init__(
        self,
        session: AsyncSession,
        scope_resolver: ScopeResolver,
        registry: RouteRegistry | None = None,
        settings: Settings | None = None,
        lock_registry: KeyLockRegistry | None = None,
    ):
        self.session = session
        self.scope_resolver = scope_resolver
        self.registry = registry if registry is not None else get_route_registry()
        self.settings = settings or get_settings()
        self.repository = PostgresSeoUrlRepository(
            session,
            conflict_policy=self.settings.seo_conflict_policy,
            lock_registry=lock_registry,
        )

    async def handle(self, event: EntityWrittenEvent | EntityDeletedEvent) -> ReconciliationResult:
        """Dispatch a notification to the matching handler."""
        if isinstance(event, EntityDeletedEvent):
            return await self.handle_deleted(event)
        return await self.handle_written(event)

    async def handle_written(self, event: EntityWrittenEvent) -> ReconciliationResult:
        """Create or update SEO URLs for written entities."""
        result = ReconciliationResult(
            batch_id=str(uuid4()),
            entity_name=event.entity_name,
            operation="written",
        )
        routes = self.registry.routes_for(event.entity_name)
        if not routes or not event.writes:
            result.status = "skipped"
            logger.debug(f"No SEO routes for {event.entity_name}, batch {result.batch_id} skipped")
            return result

        logger.info(
            f"SEO URL batch {result.batch_id}: {len(event.writes)} {event.entity_name} writes"
        )
        try:
            scopes = await resolve_scopes(
                self.scope_resolver,
                event.context,
                self.settings.scope_resolution_timeout_seconds,
            )
            candidates = self._build_candidates(event, routes, scopes, result)
            await self._end_read_phase()
            summary = await self.repository.upsert_many(candidates)
        except SeoUrlError as e:
            logger.error(f"SEO URL batch {result.batch_id} failed: {e}")
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"SEO URL batch {result.batch_id} failed: {e}")
            await self.session.rollback()
            raise StoreTransactionError(str(e)) from e

        result.inserted = summary.inserted
        result.updated = summary.updated
        result.unchanged = summary.unchanged
        result.skipped_modified = summary.skipped_modified
        result.suffixed_paths = summary.suffixed
        logger.info(
            f"SEO URL batch {result.batch_id} done: {summary.written} written "
            f"({result.inserted} new), {result.skipped_modified} kept (modified)"
        )
        return result

    async def handle_deleted(self, event: EntityDeletedEvent) -> ReconciliationResult:
        """Soft-delete SEO URLs of deleted entities in every channel and language."""
        result = ReconciliationResult(
            batch_id=str(uuid4()),
            entity_name=event.entity_name,
            operation="deleted",
        )
        routes = self.registry.routes_for(event.entity_name)
        if not routes or not event.foreign_keys:
            result.status = "skipped"
            return result

        logger.info(
            f"SEO URL batch {result.batch_id}: {len(event.foreign_keys)} {event.entity_name} deletes"
        )
        try:
            await self._end_read_phase()
            result.deleted = await self.repository.soft_delete_many(
                [route.route_name for route in routes], event.foreign_keys
            )
        except SeoUrlError as e:
            logger.error(f"SEO URL batch {result.batch_id} failed: {e}")
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"SEO URL batch {result.batch_id} failed: {e}")
            await self.session.rollback()
            raise StoreTransactionError(str(e)) from e

        return result

    async def _end_read_phase(self) -> None:
        # Scope lookups may have opened a read transaction; close it so the
        # store commits the batch while still holding the key locks
        if self.session.in_transaction():
            await self.session.commit()

    def _build_candidates(
        self,
        event: EntityWrittenEvent,
        routes: list[SeoUrlRoute],
        scopes: list[SeoScope],
        result: ReconciliationResult,
    ) -> list[SeoUrlCandidate]:
        candidates = []
        for write in event.writes:
            for route in routes:
                for scope in scopes:
                    try:
                        name = route.display_name(write.payload, scope.language_id, scope.locale)
                    except ValueError as e:
                        raise SlugGenerationError(
                            write.foreign_key, None, route.route_name, reason=str(e)
                        ) from e
                    if name is None:
                        # Partial update without the name field: nothing to regenerate
                        result.skipped_without_name += 1
                        continue
                    slug = slugify(str(name), scope.locale, self.settings.slug_max_length)
                    if not slug:
                        raise SlugGenerationError(write.foreign_key, name, route.route_name)
                    candidates.append(
                        SeoUrlCandidate(
                            route_name=route.route_name,
                            foreign_key=write.foreign_key,
                            sales_channel_id=scope.sales_channel_id,
                            language_id=scope.language_id,
                            path_info=route.build_path_info(write.foreign_key),
                            seo_path_info=build_seo_path(route.seo_path_template, slug),
                        )
                    )
        return candidates
