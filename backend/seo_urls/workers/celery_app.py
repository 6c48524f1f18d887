"""Celery application configuration."""

import json
import logging
import sys
from datetime import datetime, timezone

from celery import Celery
from celery.signals import setup_logging

from seo_urls.config import get_settings

settings = get_settings()


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    One JSON object per line on stdout so log shippers can pick up levels.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields if any
        if hasattr(record, "extra"):
            log_data["extra"] = record.extra

        return json.dumps(log_data)


@setup_logging.connect
def configure_logging(**kwargs):
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.INFO)

    for name in ("celery", "seo_urls"):
        named_logger = logging.getLogger(name)
        named_logger.handlers.clear()
        named_logger.addHandler(handler)
        named_logger.setLevel(logging.INFO)
        named_logger.propagate = False


celery_app = Celery(
    "seourls",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["seo_urls.workers.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # A batch is never re-applied behind the caller's back
    task_acks_late=False,
    task_reject_on_worker_lost=False,
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    worker_hijack_root_logger=False,
    worker_redirect_stdouts=True,
    worker_redirect_stdouts_level="INFO",
    # Result backend
    result_expires=3600,
)
