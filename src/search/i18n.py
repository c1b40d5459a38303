"""
Multi-language text resolution.

Stored content carries per-locale text maps (``{"zh-HK": "...", "en": "..."}``).
Display strings are resolved in a fixed order:

1. the exact locale key
2. any key sharing the requested locale's primary subtag (``zh-HK`` -> ``zh-CN``)
3. the first key in map order
4. ``None`` when the map is absent, not a mapping, or empty

Empty strings and non-string values are dropped before resolving, so "first
key" means the first key holding non-empty text, and a map of only blank
values resolves to ``None``.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple


def primary_subtag(language: str) -> str:
    return language.split("-", 1)[0].lower()


@dataclass(frozen=True)
class LocalizedText:
    """Closed ``{locale -> text}`` record; entry order is preserved."""

    entries: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_mapping(cls, content: Any) -> "LocalizedText":
        """Build from a raw JSON map, keeping only non-empty string values."""
        if not isinstance(content, Mapping):
            return cls()
        return cls(tuple(
            (str(locale), text)
            for locale, text in content.items()
            if isinstance(text, str) and text
        ))

    def __bool__(self) -> bool:
        return bool(self.entries)

    def resolve_locale(self, language: str) -> Optional[str]:
        """The locale key that ``resolve(language)`` reads from."""
        if not self.entries:
            return None
        keys = [locale for locale, _ in self.entries]
        if language in keys:
            return language
        prefix = primary_subtag(language)
        for locale in keys:
            if primary_subtag(locale) == prefix:
                return locale
        return keys[0]

    def resolve(self, language: str) -> Optional[str]:
        locale = self.resolve_locale(language)
        if locale is None:
            return None
        return dict(self.entries)[locale]

    def to_dict(self) -> dict:
        return dict(self.entries)


def _localized_at(content: Any, language: str, key: str) -> LocalizedText:
    """
    Localized view of ``key`` for either stored shape:
    ``{key: {locale: text}}`` or ``{locale: {key: text}}``.
    """
    if not isinstance(content, Mapping):
        return LocalizedText()
    nested = content.get(key)
    if isinstance(nested, Mapping):
        return LocalizedText.from_mapping(nested)
    return LocalizedText.from_mapping({
        locale: value.get(key)
        for locale, value in content.items()
        if isinstance(value, Mapping)
    })


def extract_text(content: Any, language: str, key: Optional[str] = None) -> Optional[str]:
    """
    Resolve a display string from a stored multi-language field.

    Args:
        content: Raw JSON field from the store.
        language: Requested locale, e.g. ``zh-HK``.
        key: Sub-field to read (``name`` / ``description`` of a craftsman bio).

    Returns:
        The resolved text, or None.
    """
    if key is None:
        return LocalizedText.from_mapping(content).resolve(language)
    return _localized_at(content, language, key).resolve(language)


def extract_locale(content: Any, language: str, key: Optional[str] = None) -> Optional[str]:
    """Locale key ``extract_text`` resolved from (for language-match boosts)."""
    if key is None:
        return LocalizedText.from_mapping(content).resolve_locale(language)
    return _localized_at(content, language, key).resolve_locale(language)
