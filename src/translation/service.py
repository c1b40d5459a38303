"""
Translation Service.

Providers are configured from settings: Google Translate and/or DeepL, with
DeepL the default when its key is present. Results are cached with a quality
report.

Batch translation runs on a thread pool whose in-flight provider calls are
bounded by a semaphore: a slot is acquired before each task is submitted and
released when the task finishes, whether it succeeded or not.
"""

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

from config.settings import Settings, get_settings
from core.errors import NoSourceContentError, TranslationProviderUnavailable
from core.logging import get_logger
from core.utils import utc_now
from translation.cache import TranslationCache
from translation.models import (
    DEFAULT_CACHED_QUALITY,
    JobStatus,
    TranslationJob,
    TranslationOutcome,
)
from translation.providers import DeepLProvider, GoogleTranslateProvider, TranslationProvider
from translation.quality import TranslationQualityAssessment

logger = get_logger(__name__)

GOOGLE = "google-translate"
DEEPL = "deepl"


class TranslationService:
    """Cached, provider-agnostic translation."""

    def __init__(
        self,
        providers: Optional[Dict[str, TranslationProvider]] = None,
        cache: Optional[TranslationCache] = None,
        default_provider: Optional[str] = None,
        max_concurrency: int = 5,
    ):
        self.providers: Dict[str, TranslationProvider] = dict(providers or {})
        self.cache = cache or TranslationCache()
        if default_provider is None:
            default_provider = DEEPL if DEEPL in self.providers else GOOGLE
        self.default_provider = default_provider
        self.max_concurrency = max_concurrency

    @classmethod
    def from_settings(cls, settings: Settings) -> "TranslationService":
        providers: Dict[str, TranslationProvider] = {}
        if settings.google_translate_api_key:
            providers[GOOGLE] = GoogleTranslateProvider(
                settings.google_translate_api_key,
                timeout=settings.translation_timeout_seconds,
            )
        if settings.deepl_api_key:
            providers[DEEPL] = DeepLProvider(
                settings.deepl_api_key,
                is_pro=settings.deepl_is_pro,
                timeout=settings.translation_timeout_seconds,
            )
        logger.info("Translation providers configured", providers=sorted(providers))
        return cls(
            providers=providers,
            cache=TranslationCache(
                capacity=settings.translation_cache_capacity,
                expiry_days=settings.translation_cache_expiry_days,
            ),
            max_concurrency=settings.translation_max_concurrency,
        )

    def _provider(self, name: str) -> TranslationProvider:
        provider = self.providers.get(name)
        if provider is None:
            raise TranslationProviderUnavailable(name)
        return provider

    # =========================================================================
    # Single
    # =========================================================================

    def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
        provider: Optional[str] = None,
        use_cache: bool = True,
        force_refresh: bool = False,
    ) -> TranslationOutcome:
        """
        Translate one text.

        Raises:
            TranslationProviderUnavailable: ``provider`` (or the default) is
                not configured and the text is not cached.
            TranslationApiError: the provider call failed.
        """
        provider = provider or self.default_provider

        if use_cache and not force_refresh:
            cached = self.cache.get(text, source_language, target_language)
            if cached is not None:
                return TranslationOutcome(
                    translated_text=cached.translated_text,
                    provider=cached.provider,
                    quality=cached.quality or DEFAULT_CACHED_QUALITY,
                    from_cache=True,
                )

        translated = self._provider(provider).translate(text, source_language, target_language)
        quality = TranslationQualityAssessment.assess(
            text, translated, source_language, target_language
        )
        if quality.needs_review:
            logger.info(
                "Translation flagged for review",
                provider=provider,
                target_language=target_language,
                issues=quality.issues,
            )

        if use_cache:
            self.cache.put(text, source_language, target_language, translated, provider, quality)

        return TranslationOutcome(translated_text=translated, provider=provider, quality=quality)

    # =========================================================================
    # Batch
    # =========================================================================

    def _translate_slot(
        self,
        slot: threading.BoundedSemaphore,
        text: str,
        source_language: str,
        target_language: str,
        provider: str,
        use_cache: bool,
    ) -> str:
        try:
            return self.translate(
                text, source_language, target_language, provider=provider, use_cache=use_cache
            ).translated_text
        except Exception as e:
            logger.warning(
                "Batch translation failed, keeping source text",
                target_language=target_language,
                error=str(e),
            )
            return text
        finally:
            slot.release()

    def batch_translate(
        self,
        texts: List[str],
        source_language: str,
        target_languages: List[str],
        provider: Optional[str] = None,
        use_cache: bool = True,
        max_concurrency: Optional[int] = None,
    ) -> TranslationJob:
        """
        Translate every text into every target language.

        A text that fails to translate keeps its source text for that language.

        Raises:
            TranslationProviderUnavailable: the provider is not configured.
        """
        provider = provider or self.default_provider
        self._provider(provider)
        limit = max(1, max_concurrency or self.max_concurrency)

        job = TranslationJob(
            id=f"job_{uuid.uuid4().hex[:12]}",
            texts=list(texts),
            source_language=source_language,
            target_languages=list(target_languages),
            status=JobStatus.PROCESSING,
            results={text: {} for text in texts},
        )

        slot = threading.BoundedSemaphore(limit)
        try:
            with ThreadPoolExecutor(max_workers=limit) as executor:
                futures = {}
                for target in target_languages:
                    for text in texts:
                        slot.acquire()
                        future = executor.submit(
                            self._translate_slot,
                            slot, text, source_language, target, provider, use_cache,
                        )
                        futures[future] = (text, target)
                for future in as_completed(futures):
                    text, target = futures[future]
                    job.results[text][target] = future.result()
            job.status = JobStatus.COMPLETED
            job.completed_at = utc_now()
        except Exception as e:
            logger.error("Batch translation job failed", job_id=job.id, error=str(e))
            job.status = JobStatus.FAILED
            job.error = str(e)

        return job

    # =========================================================================
    # Multilingual content
    # =========================================================================

    def translate_multilingual_content(
        self,
        content: Dict[str, str],
        target_languages: List[str],
        source_language: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Fill the missing locales of a ``{locale: text}`` map.

        The source is ``source_language`` or the first locale present; locales
        that already have text are left alone, and failures leave a locale
        missing.

        Raises:
            NoSourceContentError: the source locale has no text.
        """
        source = source_language or next(iter(content), None)
        if not source or not content.get(source):
            raise NoSourceContentError("No source content available for translation")

        updated = dict(content)
        for target in target_languages:
            if target == source or content.get(target):
                continue
            try:
                updated[target] = self.translate(content[source], source, target).translated_text
            except Exception as e:
                logger.warning("Failed to translate content", target_language=target, error=str(e))
        return updated

    def get_available_providers(self) -> List[str]:
        return list(self.providers)

    def get_provider_usage(self) -> Dict[str, int]:
        return self.cache.provider_usage()


# =============================================================================
# Singleton
# =============================================================================

_service: Optional[TranslationService] = None
_lock = threading.Lock()


def get_translation_service() -> TranslationService:
    """Get or create the TranslationService singleton (thread-safe)."""
    global _service
    if _service is None:
        with _lock:
            if _service is None:
                _service = TranslationService.from_settings(get_settings())
    return _service
