"""Static route seeding.

Inserts the fixed SEO URLs of controller pages once per sales channel and
language. Seeding only fills gaps: an existing live canonical record is never
changed, so running the seeder again is a no-op.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from seo_urls.config import Settings, get_settings
from seo_urls.events import SeoContext
from seo_urls.exceptions import SeoUrlError, StoreTransactionError
from seo_urls.repositories import PostgresSeoUrlRepository, SeoUrlCandidate
from seo_urls.route_config import StaticSeoRoute
from seo_urls.services.scope import ScopeResolver, build_scope_resolver, resolve_scopes
from seo_urls.static_routes import STATIC_ROUTES

logger = logging.getLogger(__name__)


@dataclass
class SeedReport:
    """Counts from one seeding run."""

    inserted: int = 0
    existing: int = 0
    untranslated: int = 0


class StaticRouteSeeder:
    """Seeds fixed SEO URLs through the store."""

    def __init__(
        self,
        session: AsyncSession,
        scope_resolver: ScopeResolver,
        routes: list[StaticSeoRoute] | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.scope_resolver = scope_resolver
        self.routes = routes if routes is not None else STATIC_ROUTES
        self.settings = settings or get_settings()
        self.repository = PostgresSeoUrlRepository(session, conflict_policy="reject")

    async def seed(self, context: SeoContext | None = None) -> SeedReport:
        """Insert missing static SEO URLs.

        Raises:
            SeoUrlError: Any failure; nothing from this run is kept.
        """
        report = SeedReport()
        if not self.routes:
            return report

        try:
            scopes = await resolve_scopes(
                self.scope_resolver,
                context or SeoContext(),
                self.settings.scope_resolution_timeout_seconds,
            )
            candidates = []
            for route in self.routes:
                for scope in scopes:
                    seo_path = route.seo_path_for(scope.language_id, scope.locale)
                    if seo_path is None:
                        report.untranslated += 1
                        continue
                    candidates.append(
                        SeoUrlCandidate(
                            route_name=route.route_name,
                            foreign_key=None,
                            sales_channel_id=scope.sales_channel_id,
                            language_id=scope.language_id,
                            path_info=route.path_info,
                            seo_path_info=seo_path,
                        )
                    )
            # Close the scope lookup's read transaction; the store commits its own
            if self.session.in_transaction():
                await self.session.commit()
            report.inserted = await self.repository.insert_missing(candidates)
            report.existing = len(candidates) - report.inserted
        except SeoUrlError as e:
            logger.error(f"Static SEO URL seeding failed: {e}")
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"Static SEO URL seeding failed: {e}")
            await self.session.rollback()
            raise StoreTransactionError(str(e)) from e

        logger.info(
            f"Seeded static SEO URLs: {report.inserted} inserted, "
            f"{report.existing} already present, {report.untranslated} without translation"
        )
        return report


async def seed_static_routes(session: AsyncSession, settings: Settings | None = None) -> SeedReport:
    """Seed static routes with the configured scope resolver."""
    settings = settings or get_settings()
    resolver = build_scope_resolver(session, settings)
    return await StaticRouteSeeder(session, resolver, settings=settings).seed()
