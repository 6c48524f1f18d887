"""PostgreSQL repository implementations.

The SEO URL store is the only writer of ``seo_urls`` rows. Every mutating
method runs inside ``transaction()``: either the caller's transaction gets a
SAVEPOINT, or the method commits its own. A failure anywhere in a batch
leaves the table as it was before the batch.
"""

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Literal, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from seo_urls.database import transaction
from seo_urls.exceptions import ConflictError, StoreTransactionError
from seo_urls.models import SeoUrl
from seo_urls.services.locks import KeyLockRegistry, get_key_lock_registry
from seo_urls.services.slugify import normalize_seo_path

logger = logging.getLogger(__name__)

ConflictPolicy = Literal["reject", "suffix"]

SeoUrlKey = tuple[str, str | None, str, str]


@dataclass(frozen=True)
class SeoUrlCandidate:
    """Desired state of one (route, entity, channel, language) key."""

    route_name: str
    foreign_key: str | None
    sales_channel_id: str
    language_id: str
    path_info: str
    seo_path_info: str

    @property
    def key(self) -> SeoUrlKey:
        return (self.route_name, self.foreign_key, self.sales_channel_id, self.language_id)


@dataclass
class UpsertSummary:
    """What an upsert batch did, per candidate outcome."""

    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped_modified: int = 0
    suffixed: list[str] = field(default_factory=list)

    @property
    def written(self) -> int:
        return self.inserted + self.updated


def lock_key(route_name: str, foreign_key: str | None) -> str:
    """Lock name covering every channel and language of one entity's route."""
    return f"{route_name}|{foreign_key or ''}"


class PostgresSeoUrlRepository:
    """PostgreSQL implementation of the SEO URL store."""

    def __init__(
        self,
        session: AsyncSession,
        conflict_policy: ConflictPolicy = "reject",
        lock_registry: KeyLockRegistry | None = None,
    ):
        self.session = session
        self.conflict_policy = conflict_policy
        self.lock_registry = lock_registry or get_key_lock_registry()

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_by_id(self, seo_url_id: str) -> SeoUrl | None:
        """Get a record by ID, deleted or not."""
        result = await self.session.execute(select(SeoUrl).where(SeoUrl.id == seo_url_id))
        return result.scalar_one_or_none()

    async def find_active(
        self,
        route_name: str,
        foreign_keys: Sequence[str] | None = None,
        sales_channel_id: str | None = None,
        language_id: str | None = None,
        include_history: bool = False,
    ) -> list[SeoUrl]:
        """Get live records of a route.

        Only canonical records are returned unless ``include_history`` is set,
        in which case demoted paths (kept for redirects) are included too.
        """
        stmt = self._filtered(route_name, foreign_keys, sales_channel_id, language_id)
        stmt = stmt.where(SeoUrl.is_deleted.is_(False))
        if not include_history:
            stmt = stmt.where(SeoUrl.is_canonical.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_all(
        self,
        route_name: str,
        foreign_keys: Sequence[str] | None = None,
        sales_channel_id: str | None = None,
        language_id: str | None = None,
    ) -> list[SeoUrl]:
        """Get every record of a route, soft-deleted ones included."""
        stmt = self._filtered(route_name, foreign_keys, sales_channel_id, language_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_canonical(
        self,
        route_name: str,
        foreign_key: str | None,
        sales_channel_id: str,
        language_id: str,
    ) -> SeoUrl | None:
        """Get the live canonical record of a key."""
        result = await self.session.execute(
            select(SeoUrl).where(
                *self._key_clause((route_name, foreign_key, sales_channel_id, language_id)),
                SeoUrl.is_canonical.is_(True),
                SeoUrl.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def resolve_path(
        self,
        sales_channel_id: str,
        language_id: str,
        seo_path_info: str,
    ) -> SeoUrl | None:
        """Find the live record answering a readable path in a channel/language."""
        result = await self.session.execute(
            select(SeoUrl).where(
                SeoUrl.sales_channel_id == sales_channel_id,
                SeoUrl.language_id == language_id,
                SeoUrl.seo_path_info == normalize_seo_path(seo_path_info),
                SeoUrl.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    # =========================================================================
    # Batch writes
    # =========================================================================

    async def upsert_many(self, candidates: Sequence[SeoUrlCandidate]) -> UpsertSummary:
        """Bring every candidate key to its desired path, all or nothing.

        Manually modified records are never touched. A changed path demotes
        the previous canonical record to history instead of overwriting it.
        """
        summary = UpsertSummary()
        if not candidates:
            return summary

        async with self._locked_write((c.route_name, c.foreign_key) for c in candidates):
            for candidate in candidates:
                await self._apply(candidate, summary)

        logger.info(
            f"Upserted {len(candidates)} SEO URL candidates: "
            f"{summary.inserted} inserted, {summary.updated} updated, "
            f"{summary.unchanged} unchanged, {summary.skipped_modified} kept (modified)"
        )
        return summary

    async def insert_missing(self, candidates: Sequence[SeoUrlCandidate]) -> int:
        """Insert candidates whose key has no live canonical record.

        Existing records are left exactly as they are. Path collisions are
        always rejected here, regardless of the configured policy.
        """
        if not candidates:
            return 0

        inserted = 0
        async with self._locked_write((c.route_name, c.foreign_key) for c in candidates):
            for candidate in candidates:
                existing = await self.get_canonical(*candidate.key)
                if existing is not None:
                    continue
                seo_path = normalize_seo_path(candidate.seo_path_info)
                holder = await self._path_holder(
                    candidate.sales_channel_id, candidate.language_id, seo_path, candidate.key
                )
                if holder is not None:
                    raise ConflictError(
                        seo_path,
                        candidate.sales_channel_id,
                        candidate.language_id,
                        existing_key=holder.key,
                        incoming_key=candidate.key,
                    )
                self.session.add(self._new_record(candidate, seo_path))
                await self.session.flush()
                inserted += 1
        return inserted

    async def soft_delete_many(self, route_names: str | Sequence[str], foreign_keys: Sequence[str]) -> int:
        """Mark every record of the given entities deleted. Rows are kept.

        Several routes of one entity type are deleted in a single transaction.
        """
        if isinstance(route_names, str):
            route_names = [route_names]
        if not foreign_keys or not route_names:
            return 0
        owners = [(route_name, fk) for route_name in route_names for fk in foreign_keys]
        async with self._locked_write(owners):
            # Selected under the entity locks so concurrent renames are seen
            result = await self.session.execute(
                select(SeoUrl).where(
                    SeoUrl.route_name.in_(list(route_names)),
                    SeoUrl.foreign_key.in_(list(foreign_keys)),
                    SeoUrl.is_deleted.is_(False),
                )
            )
            records = list(result.scalars().all())
            for record in records:
                record.is_deleted = True
            await self.session.flush()
        logger.info(
            f"Soft-deleted {len(records)} SEO URLs of {', '.join(route_names)} "
            f"for {len(foreign_keys)} entities"
        )
        return len(records)

    # =========================================================================
    # Manual edits
    # =========================================================================

    async def update_manual(
        self,
        record: SeoUrl,
        seo_path_info: str | None = None,
        path_info: str | None = None,
    ) -> SeoUrl:
        """Apply a hand edit and protect it from regeneration.

        Moving a canonical record back to one of its own history paths
        promotes that history record instead; the promoted record is returned.
        """
        async with self._locked_write([(record.route_name, record.foreign_key)]):
            if seo_path_info is not None:
                seo_path = normalize_seo_path(seo_path_info)
                holder = await self._path_holder(
                    record.sales_channel_id, record.language_id, seo_path, exclude_id=record.id
                )
                if holder is not None and holder.key == record.key and record.is_canonical:
                    # Demote first so the canonical index never sees two live entries
                    record.is_canonical = False
                    await self.session.flush()
                    holder.is_canonical = True
                    holder.path_info = record.path_info
                    record = holder
                elif holder is not None:
                    raise ConflictError(
                        seo_path,
                        record.sales_channel_id,
                        record.language_id,
                        existing_key=holder.key,
                        incoming_key=record.key,
                    )
                else:
                    record.seo_path_info = seo_path
            if path_info is not None:
                record.path_info = path_info
            record.is_modified = True
            await self.session.flush()
        return record

    async def set_modified(self, record: SeoUrl, is_modified: bool) -> SeoUrl:
        """Turn manual-edit protection on or off."""
        async with self._locked_write([(record.route_name, record.foreign_key)]):
            record.is_modified = is_modified
            await self.session.flush()
        return record

    # =========================================================================
    # Internals
    # =========================================================================

    @asynccontextmanager
    async def _atomic(self) -> AsyncIterator[None]:
        try:
            async with transaction(self.session):
                yield
        except SQLAlchemyError as e:
            logger.error(f"SEO URL store transaction rolled back: {e}")
            raise StoreTransactionError(str(e)) from e

    @asynccontextmanager
    async def _locked_write(self, owners: Iterable[tuple[str, str | None]]) -> AsyncIterator[None]:
        """Run a write holding the entity locks, in process and in the database.

        Every write path locks whole (route, entity) owners, so a delete
        cannot miss a record that a concurrent rename is inserting.
        """
        names = sorted({lock_key(route_name, foreign_key) for route_name, foreign_key in owners})
        async with self.lock_registry.acquire(names):
            async with self._atomic():
                await self._lock_in_database(names)
                yield

    async def _lock_in_database(self, names: Sequence[str]) -> None:
        """Take transaction-scoped advisory locks on PostgreSQL."""
        if self.session.get_bind().dialect.name != "postgresql":
            return
        for name in names:
            await self.session.execute(select(func.pg_advisory_xact_lock(func.hashtext(name))))

    async def _apply(self, candidate: SeoUrlCandidate, summary: UpsertSummary) -> None:
        records = await self._key_records(candidate.key)
        canonical = next((r for r in records if r.is_canonical and not r.is_deleted), None)

        if canonical is not None and canonical.is_modified:
            summary.skipped_modified += 1
            return

        seo_path = await self._free_path(candidate, normalize_seo_path(candidate.seo_path_info))
        if seo_path != normalize_seo_path(candidate.seo_path_info):
            summary.suffixed.append(seo_path)

        if canonical is not None and canonical.seo_path_info == seo_path:
            if canonical.path_info == candidate.path_info:
                summary.unchanged += 1
            else:
                canonical.path_info = candidate.path_info
                await self.session.flush()
                summary.updated += 1
            return

        # Demote first so the canonical index never sees two live entries
        if canonical is not None:
            canonical.is_canonical = False
            await self.session.flush()

        previous = next((r for r in records if r.seo_path_info == seo_path), None)
        if previous is not None:
            previous.is_canonical = True
            previous.is_deleted = False
            previous.path_info = candidate.path_info
        else:
            self.session.add(self._new_record(candidate, seo_path))
        await self.session.flush()

        if canonical is not None or previous is not None:
            summary.updated += 1
        else:
            summary.inserted += 1

    async def _free_path(self, candidate: SeoUrlCandidate, seo_path: str) -> str:
        """Return a path not used by another key, per the conflict policy."""
        holder = await self._path_holder(
            candidate.sales_channel_id, candidate.language_id, seo_path, candidate.key
        )
        if holder is None:
            return seo_path
        if self.conflict_policy == "reject":
            raise ConflictError(
                seo_path,
                candidate.sales_channel_id,
                candidate.language_id,
                existing_key=holder.key,
                incoming_key=candidate.key,
            )

        counter = 2
        while True:
            suffixed = f"{seo_path}-{counter}"
            holder = await self._path_holder(
                candidate.sales_channel_id, candidate.language_id, suffixed, candidate.key
            )
            if holder is None:
                logger.info(f"SEO path {seo_path} taken, using {suffixed} for {candidate.key}")
                return suffixed
            counter += 1

    async def _path_holder(
        self,
        sales_channel_id: str,
        language_id: str,
        seo_path_info: str,
        own_key: SeoUrlKey | None = None,
        exclude_id: str | None = None,
    ) -> SeoUrl | None:
        """Live record of another owner using ``seo_path_info`` in the scope."""
        stmt = select(SeoUrl).where(
            SeoUrl.sales_channel_id == sales_channel_id,
            SeoUrl.language_id == language_id,
            SeoUrl.seo_path_info == seo_path_info,
            SeoUrl.is_deleted.is_(False),
        )
        if exclude_id is not None:
            stmt = stmt.where(SeoUrl.id != exclude_id)
        result = await self.session.execute(stmt)
        for record in result.scalars().all():
            if own_key is None or record.key != own_key:
                return record
        return None

    async def _key_records(self, key: SeoUrlKey) -> list[SeoUrl]:
        result = await self.session.execute(
            select(SeoUrl).where(*self._key_clause(key)).order_by(SeoUrl.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    def _key_clause(key: SeoUrlKey) -> list:
        route_name, foreign_key, sales_channel_id, language_id = key
        return [
            SeoUrl.route_name == route_name,
            SeoUrl.foreign_key.is_(None) if foreign_key is None else SeoUrl.foreign_key == foreign_key,
            SeoUrl.sales_channel_id == sales_channel_id,
            SeoUrl.language_id == language_id,
        ]

    @staticmethod
    def _filtered(
        route_name: str,
        foreign_keys: Sequence[str] | None,
        sales_channel_id: str | None,
        language_id: str | None,
    ):
        stmt = select(SeoUrl).where(SeoUrl.route_name == route_name)
        if foreign_keys is not None:
            stmt = stmt.where(SeoUrl.foreign_key.in_(list(foreign_keys)))
        if sales_channel_id is not None:
            stmt = stmt.where(SeoUrl.sales_channel_id == sales_channel_id)
        if language_id is not None:
            stmt = stmt.where(SeoUrl.language_id == language_id)
        return stmt.order_by(
            SeoUrl.foreign_key,
            SeoUrl.sales_channel_id,
            SeoUrl.language_id,
            SeoUrl.created_at,
        )

    @staticmethod
    def _new_record(candidate: SeoUrlCandidate, seo_path: str) -> SeoUrl:
        return SeoUrl(
            route_name=candidate.route_name,
            foreign_key=candidate.foreign_key,
            sales_channel_id=candidate.sales_channel_id,
            language_id=candidate.language_id,
            path_info=candidate.path_info,
            seo_path_info=seo_path,
            is_canonical=True,
            is_modified=False,
            is_deleted=False,
        )


