"""Sales channel and language models used for scope resolution."""

from sqlalchemy import Boolean, Column, ForeignKey, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from seo_urls.database import Base

STOREFRONT_TYPE = "storefront"


sales_channel_languages = Table(
    "sales_channel_languages",
    Base.metadata,
    Column(
        "sales_channel_id",
        String(255),
        ForeignKey("sales_channels.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "language_id",
        String(255),
        ForeignKey("languages.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Language(Base):
    """A language SEO paths can be written in."""

    __tablename__ = "languages"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    locale: Mapped[str] = mapped_column(String(16))


class SalesChannel(Base):
    """A storefront (or other distribution context) URLs are valid for."""

    __tablename__ = "sales_channels"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    type_name: Mapped[str] = mapped_column(String(50), default=STOREFRONT_TYPE)
    active: Mapped[bool] = mapped_column(Boolean, default=True)

    languages: Mapped[list[Language]] = relationship(
        Language,
        secondary=sales_channel_languages,
        order_by=Language.id,
    )
