"""Business logic services."""

from seo_urls.services.slugify import build_seo_path, slugify

__all__ = [
    "slugify",
    "build_seo_path",
]
