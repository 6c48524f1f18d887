"""Repository implementations for data access."""

from seo_urls.repositories.postgres import (
    PostgresSeoUrlRepository,
    SeoUrlCandidate,
    UpsertSummary,
)

__all__ = [
    "PostgresSeoUrlRepository",
    "SeoUrlCandidate",
    "UpsertSummary",
]
