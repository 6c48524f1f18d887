"""SEO route definitions: which entities get SEO URLs and how they are built."""

from dataclasses import dataclass
from typing import Any, Iterable, Iterator


@dataclass(frozen=True)
class SeoUrlRoute:
    """A dynamic route whose SEO paths are derived from entity data.

    Attributes:
        route_name: Opaque route identifier (resolved to a handler elsewhere)
        entity_name: Entity type whose writes regenerate this route's URLs
        path_info_template: Technical path, ``{id}`` is the entity key
        seo_path_template: Readable path, ``{slug}`` is the slugified name
        name_field: Payload field holding the display name
    """

    route_name: str
    entity_name: str
    path_info_template: str
    seo_path_template: str = "/{slug}"
    name_field: str = "name"

    def build_path_info(self, foreign_key: str) -> str:
        return self.path_info_template.format(id=foreign_key)

    def display_name(
        self,
        payload: dict[str, Any],
        language_id: str,
        locale: str | None = None,
    ) -> str | None:
        """Pick the display name for a language.

        Looks in ``payload["translations"]`` by language id, then locale, and
        falls back to the untranslated field. Returns ``None`` when the payload
        does not carry the field at all (e.g. a partial update).

        Raises:
            ValueError: ``translations`` or one of its entries is not a mapping.
        """
        translations = payload.get("translations") or {}
        if not isinstance(translations, dict):
            raise ValueError(f"translations must be an object, got {type(translations).__name__}")
        for lookup in (language_id, locale):
            translated = translations.get(lookup) if lookup else None
            if translated is not None and not isinstance(translated, dict):
                raise ValueError(
                    f"translations[{lookup!r}] must be an object, got {type(translated).__name__}"
                )
            if translated and self.name_field in translated:
                return translated[self.name_field] or ""
        if self.name_field in payload:
            return payload[self.name_field] or ""
        return None


class RouteRegistry:
    """Routes indexed by entity type."""

    def __init__(self, routes: Iterable[SeoUrlRoute] = ()):
        self._routes: dict[str, SeoUrlRoute] = {}
        for route in routes:
            self.register(route)

    def register(self, route: SeoUrlRoute) -> None:
        if route.route_name in self._routes:
            raise ValueError(f"Route {route.route_name} is already registered")
        self._routes[route.route_name] = route

    def routes_for(self, entity_name: str) -> list[SeoUrlRoute]:
        return [r for r in self._routes.values() if r.entity_name == entity_name]

    def __iter__(self) -> Iterator[SeoUrlRoute]:
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)


@dataclass(frozen=True)
class StaticSeoRoute:
    """A fixed page with hand-written SEO paths, one per language.

    ``translations`` maps a language id or a locale to the readable path.
    """

    route_name: str
    path_info: str
    translations: dict[str, str]

    def seo_path_for(self, language_id: str, locale: str | None = None) -> str | None:
        if language_id in self.translations:
            return self.translations[language_id]
        if locale is not None:
            return self.translations.get(locale)
        return None
