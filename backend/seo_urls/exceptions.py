"""Errors raised by SEO URL reconciliation.

Every error reaches the caller of a reconciliation pass; nothing here is
retried automatically.
"""


class SeoUrlError(Exception):
    """Base class for SEO URL errors."""


class ScopeResolutionError(SeoUrlError):
    """No sales channel or language could be resolved for a batch."""


class SlugGenerationError(SeoUrlError):
    """No usable path segment could be built from an entity's display name."""

    def __init__(
        self,
        foreign_key: str | None,
        text: str | None,
        route_name: str | None = None,
        reason: str | None = None,
    ):
        self.foreign_key = foreign_key
        self.text = text
        self.route_name = route_name
        self.reason = reason or f"{text!r} yields an empty slug"
        super().__init__(
            f"Cannot build SEO path for {route_name or 'route'} "
            f"entity {foreign_key!r}: {self.reason}"
        )


class ConflictError(SeoUrlError):
    """A SEO path is already used by another live record in the same scope."""

    def __init__(
        self,
        seo_path_info: str,
        sales_channel_id: str,
        language_id: str,
        existing_key: tuple | None = None,
        incoming_key: tuple | None = None,
    ):
        self.seo_path_info = seo_path_info
        self.sales_channel_id = sales_channel_id
        self.language_id = language_id
        self.existing_key = existing_key
        self.incoming_key = incoming_key
        super().__init__(
            f"SEO path {seo_path_info!r} in channel {sales_channel_id}/{language_id} "
            f"is taken by {existing_key} (requested by {incoming_key})"
        )


class StoreTransactionError(SeoUrlError):
    """The underlying persistence transaction failed and was rolled back."""
