"""SEO URL model: one human-readable path per route, entity, channel and language."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from seo_urls.database import Base


class SeoUrl(Base):
    """A SEO path record.

    Records are never removed. Renames demote the previous canonical path to
    a non-canonical history entry; entity deletion sets ``is_deleted``.
    """

    __tablename__ = "seo_urls"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Ownership: route + entity (foreign_key is NULL for static pages)
    route_name: Mapped[str] = mapped_column(String(255))
    foreign_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sales_channel_id: Mapped[str] = mapped_column(String(255))
    language_id: Mapped[str] = mapped_column(String(255))

    # Technical path (e.g. /example-path/{id}) and its readable alias
    path_info: Mapped[str] = mapped_column(String(2048))
    seo_path_info: Mapped[str] = mapped_column(String(2048))

    # State flags
    is_canonical: Mapped[bool] = mapped_column(Boolean, default=True)
    is_modified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_seo_urls_route_foreign_key", "route_name", "foreign_key"),
        Index("ix_seo_urls_deleted_canonical", "is_deleted", "is_canonical"),
        # A readable path belongs to at most one live record per channel/language
        Index(
            "uq_seo_urls_live_path",
            "sales_channel_id",
            "language_id",
            "seo_path_info",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
        # One live canonical record per key
        Index(
            "uq_seo_urls_live_canonical",
            "route_name",
            "foreign_key",
            "sales_channel_id",
            "language_id",
            unique=True,
            postgresql_where=text("is_canonical = true AND is_deleted = false"),
            sqlite_where=text("is_canonical = 1 AND is_deleted = 0"),
        ),
    )

    @property
    def key(self) -> tuple[str, str | None, str, str]:
        """Identity of the owning (route, entity, channel, language)."""
        return (self.route_name, self.foreign_key, self.sales_channel_id, self.language_id)

    def __repr__(self) -> str:
        return (
            f"<SeoUrl {self.route_name}:{self.foreign_key} "
            f"{self.sales_channel_id}/{self.language_id} {self.seo_path_info}>"
        )
