"""Slug generation for SEO paths.

Wraps python-slugify with per-locale transliteration rules so that, for
example, German umlauts become ``ae``/``oe``/``ue`` instead of bare vowels.
Output depends only on the input text, locale and length limit.
"""

import re
import unicodedata

from slugify import slugify as _slugify

SEPARATOR = "-"

# Applied before generic transliteration, keyed by primary language subtag
LOCALE_REPLACEMENTS: dict[str, list[list[str]]] = {
    "de": [
        ["Ä", "Ae"], ["Ö", "Oe"], ["Ü", "Ue"],
        ["ä", "ae"], ["ö", "oe"], ["ü", "ue"], ["ß", "ss"],
    ],
    "da": [["Æ", "Ae"], ["Ø", "Oe"], ["Å", "Aa"], ["æ", "ae"], ["ø", "oe"], ["å", "aa"]],
    "nb": [["Æ", "Ae"], ["Ø", "Oe"], ["Å", "Aa"], ["æ", "ae"], ["ø", "oe"], ["å", "aa"]],
    "sv": [["Å", "A"], ["Ä", "A"], ["Ö", "O"], ["å", "a"], ["ä", "a"], ["ö", "o"]],
}

# Symbols that read better as words than as separators
COMMON_REPLACEMENTS: list[list[str]] = [["&", " and "], ["@", " at "]]


def primary_language(locale: str | None) -> str:
    """Return the primary subtag of a locale: ``de-DE`` / ``de_AT`` -> ``de``."""
    if not locale:
        return ""
    return re.split(r"[-_]", locale.strip(), maxsplit=1)[0].lower()


def slugify(text: str | None, locale: str | None = None, max_length: int = 200) -> str:
    """Turn free text into a URL-safe path segment.

    Returns an empty string when nothing usable remains (blank input,
    punctuation only); callers decide whether that is an error.

    Examples:
        >>> slugify("Beispiel Seite", "de-DE")
        'beispiel-seite'
        >>> slugify("Grüße aus Köln", "de")
        'gruesse-aus-koeln'
    """
    if not text or not text.strip():
        return ""
    # Composed form so locale replacements match decomposed input too
    text = unicodedata.normalize("NFC", text)
    replacements = LOCALE_REPLACEMENTS.get(primary_language(locale), []) + COMMON_REPLACEMENTS
    return _slugify(
        text,
        separator=SEPARATOR,
        lowercase=True,
        max_length=max_length,
        word_boundary=True,
        replacements=replacements,
    )


def build_seo_path(template: str, slug: str) -> str:
    """Render a SEO path template such as ``/blog/{slug}``."""
    path = template.format(slug=slug)
    path = re.sub(r"/{2,}", "/", path)
    if not path.startswith("/"):
        path = "/" + path
    return path


def normalize_seo_path(path: str) -> str:
    """Normalize a hand-written SEO path: leading slash, no duplicate slashes."""
    path = re.sub(r"/{2,}", "/", path.strip())
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path
