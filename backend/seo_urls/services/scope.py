"""Sales channel / language scope resolution.

A notification may name a sales channel and language, or leave either open
("all"). Resolvers expand that context into the concrete (channel, language)
pairs SEO URLs are generated for.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from seo_urls.config import Settings
from seo_urls.events import SeoContext
from seo_urls.exceptions import ScopeResolutionError
from seo_urls.models import STOREFRONT_TYPE, SalesChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeoScope:
    """One sales channel + language pair."""

    sales_channel_id: str
    language_id: str
    locale: str


class ScopeResolver(Protocol):
    """Expands a notification context into concrete scopes."""

    async def resolve(self, context: SeoContext) -> list[SeoScope]:
        ...


class StaticScopeResolver:
    """Resolver backed by a fixed list of scopes (usually from settings).

    Explicit channel/language ids in the context are used as given; only the
    open dimensions are filled from the configured scopes.
    """

    def __init__(self, scopes: list[SeoScope]):
        self.scopes = list(scopes)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StaticScopeResolver":
        if not settings.default_sales_channel_id or not settings.default_language_id:
            return cls([])
        return cls([
            SeoScope(
                sales_channel_id=settings.default_sales_channel_id,
                language_id=settings.default_language_id,
                locale=settings.default_locale,
            )
        ])

    async def resolve(self, context: SeoContext) -> list[SeoScope]:
        locales = {s.language_id: s.locale for s in self.scopes}

        if context.sales_channel_id is not None:
            channel_ids = [context.sales_channel_id]
        else:
            channel_ids = list(dict.fromkeys(s.sales_channel_id for s in self.scopes))

        resolved = []
        for channel_id in channel_ids:
            if context.language_id is not None:
                language_ids = [context.language_id]
            else:
                language_ids = [s.language_id for s in self.scopes if s.sales_channel_id == channel_id]
                if not language_ids:
                    # Channel named explicitly but not configured: use configured languages
                    language_ids = list(locales)
            for language_id in language_ids:
                resolved.append(SeoScope(channel_id, language_id, locales.get(language_id, language_id)))
        return resolved


class DatabaseScopeResolver:
    """Resolver reading active storefront channels and their languages."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve(self, context: SeoContext) -> list[SeoScope]:
        stmt = (
            select(SalesChannel)
            .options(selectinload(SalesChannel.languages))
            .where(
                SalesChannel.active.is_(True),
                SalesChannel.type_name == STOREFRONT_TYPE,
            )
            .order_by(SalesChannel.id)
        )
        if context.sales_channel_id is not None:
            stmt = stmt.where(SalesChannel.id == context.sales_channel_id)

        result = await self.session.execute(stmt)
        scopes = []
        for channel in result.scalars().all():
            for language in channel.languages:
                if context.language_id is not None and language.id != context.language_id:
                    continue
                scopes.append(SeoScope(channel.id, language.id, language.locale))
        return scopes


def build_scope_resolver(session: AsyncSession, settings: Settings) -> ScopeResolver:
    """Pick the resolver configured in settings."""
    if settings.scope_resolver == "static":
        return StaticScopeResolver.from_settings(settings)
    return DatabaseScopeResolver(session)


async def resolve_scopes(
    resolver: ScopeResolver,
    context: SeoContext,
    timeout: float,
) -> list[SeoScope]:
    """Resolve scopes with a deadline.

    Raises:
        ScopeResolutionError: On timeout, lookup failure, or when no sales
            channel resolves. No default is guessed in any of these cases.
    """
    try:
        scopes = await asyncio.wait_for(resolver.resolve(context), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ScopeResolutionError(
            f"Scope lookup timed out after {timeout}s for {context.model_dump()}"
        ) from e
    except ScopeResolutionError:
        raise
    except Exception as e:
        raise ScopeResolutionError(f"Scope lookup failed for {context.model_dump()}: {e}") from e

    if not scopes:
        raise ScopeResolutionError(f"No sales channel resolvable for {context.model_dump()}")
    logger.debug(f"Resolved {len(scopes)} scopes for {context.model_dump()}")
    return scopes
