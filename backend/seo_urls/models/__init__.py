"""SQLAlchemy models."""

from seo_urls.models.sales_channel import (
    STOREFRONT_TYPE,
    Language,
    SalesChannel,
    sales_channel_languages,
)
from seo_urls.models.seo_url import SeoUrl

__all__ = [
    "SeoUrl",
    "SalesChannel",
    "Language",
    "sales_channel_languages",
    "STOREFRONT_TYPE",
]
