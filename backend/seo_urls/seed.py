"""Seed static SEO URLs from the command line.

Usage: python -m seo_urls.seed

Exits non-zero when seeding fails so deployment can retry.
"""

import asyncio
import logging
import sys

from seo_urls.config import get_settings
from seo_urls.database import async_session_maker, engine
from seo_urls.exceptions import SeoUrlError
from seo_urls.services.seeder import seed_static_routes

logger = logging.getLogger("seo_urls.seed")


async def main() -> int:
    settings = get_settings()
    try:
        async with async_session_maker() as session:
            report = await seed_static_routes(session, settings)
    except SeoUrlError as e:
        logger.error(f"Static SEO URL seeding failed: {e}")
        return 1
    finally:
        await engine.dispose()
    print(f"Inserted {report.inserted}, already present {report.existing}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(main()))
