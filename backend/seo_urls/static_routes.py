"""Routes this installation generates SEO URLs for."""

from functools import lru_cache

from seo_urls.route_config import RouteRegistry, SeoUrlRoute, StaticSeoRoute

# Entity-backed routes: SEO paths follow the entity's display name
DYNAMIC_ROUTES: list[SeoUrlRoute] = [
    SeoUrlRoute(
        route_name="example.route.name",
        entity_name="example_entity",
        path_info_template="/example-path/{id}",
    ),
]

# Controller pages without an entity: paths are fixed per language
STATIC_ROUTES: list[StaticSeoRoute] = [
    StaticSeoRoute(
        route_name="frontend.example.page",
        path_info="/example",
        translations={
            "de-DE": "/beispiel-seite",
            "en-GB": "/example-page",
        },
    ),
]


@lru_cache
def get_route_registry() -> RouteRegistry:
    """Get the registry of dynamic routes."""
    return RouteRegistry(DYNAMIC_ROUTES)
