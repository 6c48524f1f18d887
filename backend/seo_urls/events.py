"""Entity lifecycle notifications consumed by the reconciler.

The same models are used as HTTP request bodies and as Celery task payloads.
"""

from typing import Any

from pydantic import BaseModel, Field


class SeoContext(BaseModel):
    """Scope of a notification. ``None`` means "all" for that dimension."""

    sales_channel_id: str | None = None
    language_id: str | None = None


class EntityWrite(BaseModel):
    """One written entity: its primary key and the written fields."""

    foreign_key: str
    payload: dict[str, Any] = Field(default_factory=dict)


class EntityWrittenEvent(BaseModel):
    """Entities of one type were created or updated."""

    entity_name: str
    writes: list[EntityWrite]
    context: SeoContext = Field(default_factory=SeoContext)


class EntityDeletedEvent(BaseModel):
    """Entities of one type were deleted."""

    entity_name: str
    foreign_keys: list[str]
    context: SeoContext = Field(default_factory=SeoContext)
