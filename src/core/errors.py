"""
Exception hierarchy for the discovery engine.

Collaborator failures (store, providers) are raised with these types at the
narrowest scope and downgraded by the caller; only translation requests let
them reach the API edge.
"""

from typing import Optional


class DiscoveryError(Exception):
    """Base class for engine errors."""


class StoreUnavailableError(DiscoveryError):
    """The content store or behavior log could not be queried."""


class TranslationError(DiscoveryError):
    """A translation could not be produced."""


class TranslationProviderUnavailable(TranslationError):
    """The requested translation provider is not configured."""

    def __init__(self, provider: str):
        super().__init__(f"Translation provider '{provider}' not available")
        self.provider = provider


class TranslationApiError(TranslationError):
    """Raised for translation provider HTTP failures."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NoSourceContentError(TranslationError):
    """Multilingual content has no text in the source locale."""
