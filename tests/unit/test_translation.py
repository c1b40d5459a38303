"""
Tests for the translation cache, quality heuristics, providers and service.
"""

import threading
import time
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

from core.errors import NoSourceContentError, TranslationApiError, TranslationProviderUnavailable
from translation.cache import TranslationCache
from translation.models import JobStatus
from translation.providers import DeepLProvider, GoogleTranslateProvider, TranslationProvider
from translation.quality import TranslationQualityAssessment
from translation.service import DEEPL, GOOGLE, TranslationService


class Clock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class EchoProvider(TranslationProvider):
    """Prefixes the target language; fails for texts listed in ``fail_on``."""

    name = "echo"

    def __init__(self, fail_on=(), delay=0.0):
        self.fail_on = set(fail_on)
        self.delay = delay
        self.calls = 0
        self.in_flight = 0
        self.peak = 0
        self._lock = threading.Lock()

    def translate(self, text, source, target):
        with self._lock:
            self.calls += 1
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if text in self.fail_on:
                raise TranslationApiError("provider down", status_code=503)
            return f"{target}:{text}"
        finally:
            with self._lock:
                self.in_flight -= 1


# ============================================================================
# Cache
# ============================================================================

class TestTranslationCache:

    def test_put_and_get(self):
        cache = TranslationCache()
        cache.put("竹編", "zh-HK", "en", "Bamboo weaving", provider=DEEPL)

        entry = cache.get("竹編", "zh-HK", "en")
        assert entry.translated_text == "Bamboo weaving"
        assert entry.use_count == 2
        assert cache.get("竹編", "zh-HK", "zh-CN") is None

    def test_least_used_evicted_first(self):
        cache = TranslationCache(capacity=10)
        for i in range(10):
            cache.put(f"t{i}", "en", "zh-HK", f"譯{i}", provider=GOOGLE)
        for i in range(10):
            if i != 3:
                cache.get(f"t{i}", "en", "zh-HK")

        cache.put("new", "en", "zh-HK", "新", provider=GOOGLE)

        assert len(cache) == 10
        assert cache.get("t3", "en", "zh-HK") is None
        assert cache.get("new", "en", "zh-HK") is not None

    def test_least_recently_used_breaks_ties(self):
        clock = Clock()
        cache = TranslationCache(capacity=10, clock=clock)
        for i in range(10):
            cache.put(f"t{i}", "en", "zh-HK", f"譯{i}", provider=GOOGLE)
            clock.advance(minutes=1)

        cache.put("new", "en", "zh-HK", "新", provider=GOOGLE)
        assert cache.get("t0", "en", "zh-HK") is None
        assert cache.get("t1", "en", "zh-HK") is not None

    def test_overwrite_at_capacity_does_not_evict(self):
        cache = TranslationCache(capacity=2)
        cache.put("a", "en", "zh-HK", "甲", provider=GOOGLE)
        cache.put("b", "en", "zh-HK", "乙", provider=GOOGLE)
        cache.put("a", "en", "zh-HK", "甲甲", provider=GOOGLE)

        assert len(cache) == 2
        assert cache.get("a", "en", "zh-HK").translated_text == "甲甲"

    def test_expiry(self):
        clock = Clock()
        cache = TranslationCache(expiry_days=30, clock=clock)
        cache.put("a", "en", "zh-HK", "甲", provider=GOOGLE)

        clock.advance(days=29)
        assert cache.get("a", "en", "zh-HK") is not None
        clock.advance(days=2)
        assert cache.get("a", "en", "zh-HK") is None
        assert cache.clear_expired() == 1
        assert len(cache) == 0

    def test_provider_usage(self):
        cache = TranslationCache()
        cache.put("a", "en", "zh-HK", "甲", provider=GOOGLE)
        cache.put("b", "en", "zh-HK", "乙", provider=DEEPL)
        cache.put("c", "en", "zh-HK", "丙", provider=DEEPL)
        assert cache.provider_usage() == {GOOGLE: 1, DEEPL: 2}


# ============================================================================
# Quality
# ============================================================================

class TestQualityAssessment:

    def test_clean_translation(self):
        quality = TranslationQualityAssessment.assess("Bamboo", "竹編", "en", "zh-HK")
        assert quality.score == 1.0
        assert quality.needs_review is False
        assert quality.issues == []

    def test_untranslated_chinese_target(self):
        quality = TranslationQualityAssessment.assess("Hello", "Hello", "en", "zh-HK")

        assert "Text appears untranslated" in quality.issues
        assert "No Chinese characters in Chinese translation" in quality.issues
        assert quality.score == pytest.approx(0.4)
        assert quality.needs_review is True

    def test_empty_translation(self):
        quality = TranslationQualityAssessment.assess("Hello", "", "en", "en")
        assert quality.score == 0.0
        assert quality.confidence == 0.0
        assert "Empty translation" in quality.issues

    def test_markup_and_artifacts(self):
        quality = TranslationQualityAssessment.assess(
            "<b>Bamboo</b> weaving", "[AUTO-TRANSLATED] 竹編工藝品", "en", "zh-HK"
        )
        assert "HTML markup not preserved" in quality.issues
        assert "Contains translation artifacts" in quality.issues

    def test_human_review(self):
        flagged = TranslationQualityAssessment.assess("Hello", "Hello", "en", "zh-HK")
        clean = TranslationQualityAssessment.assess("Bamboo", "竹編", "en", "zh-HK")
        assert TranslationQualityAssessment.should_use_human_review(flagged) is True
        assert TranslationQualityAssessment.should_use_human_review(clean) is False


# ============================================================================
# Providers
# ============================================================================

def _http(status_code=200, payload=None, text=""):
    http = MagicMock()
    http.post.return_value.status_code = status_code
    http.post.return_value.text = text
    http.post.return_value.json.return_value = payload or {}
    return http


class TestGoogleTranslateProvider:

    def test_translate_maps_traditional_chinese(self):
        http = _http(payload={"data": {"translations": [{"translatedText": "竹編"}]}})
        provider = GoogleTranslateProvider("g-key", http=http)

        assert provider.translate("Bamboo", "en", "zh-HK") == "竹編"

        kwargs = http.post.call_args.kwargs
        assert http.post.call_args.args[0] == GoogleTranslateProvider.BASE_URL
        assert kwargs["params"] == {"key": "g-key"}
        assert kwargs["json"]["q"] == ["Bamboo"]
        assert kwargs["json"]["target"] == "zh-TW"

    def test_error_status(self):
        provider = GoogleTranslateProvider("g-key", http=_http(status_code=403, text="forbidden"))
        with pytest.raises(TranslationApiError) as exc_info:
            provider.translate("Bamboo", "en", "zh-HK")
        assert exc_info.value.status_code == 403

    def test_network_error(self):
        http = MagicMock()
        http.post.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(TranslationApiError):
            GoogleTranslateProvider("g-key", http=http).translate("Bamboo", "en", "zh-HK")

    def test_detect_language(self):
        http = _http(payload={"data": {"detections": [[{"language": "zh-TW"}]]}})
        assert GoogleTranslateProvider("g-key", http=http).detect_language("竹編") == "zh-HK"

    def test_detect_language_falls_back_to_english(self):
        provider = GoogleTranslateProvider("g-key", http=_http(status_code=500))
        assert provider.detect_language("???") == "en"


class TestDeepLProvider:

    def test_free_endpoint_and_auth_header(self):
        http = _http(payload={"translations": [{"text": "Bamboo weaving"}]})
        provider = DeepLProvider("d-key", http=http)

        assert provider.translate("竹編", "zh-HK", "en") == "Bamboo weaving"

        url = http.post.call_args.args[0]
        kwargs = http.post.call_args.kwargs
        assert url == "https://api-free.deepl.com/v2/translate"
        assert ("text", "竹編") in kwargs["data"]
        assert ("source_lang", "ZH") in kwargs["data"]
        assert ("target_lang", "EN") in kwargs["data"]
        assert kwargs["headers"]["Authorization"] == "DeepL-Auth-Key d-key"

    def test_pro_endpoint(self):
        assert DeepLProvider("d-key", is_pro=True).base_url == "https://api.deepl.com/v2"

    def test_batch(self):
        http = _http(payload={"translations": [{"text": "A"}, {"text": "B"}]})
        assert DeepLProvider("d-key", http=http).batch_translate(["甲", "乙"], "zh-HK", "en") == ["A", "B"]


# ============================================================================
# Service
# ============================================================================

@pytest.fixture
def provider():
    return EchoProvider()


@pytest.fixture
def service(provider):
    return TranslationService(providers={GOOGLE: provider})


class TestTranslationService:

    def test_default_provider_prefers_deepl(self, provider):
        assert TranslationService(providers={GOOGLE: provider}).default_provider == GOOGLE
        both = TranslationService(providers={GOOGLE: provider, DEEPL: provider})
        assert both.default_provider == DEEPL

    def test_translate_then_cache_hit(self, service, provider):
        first = service.translate("竹編", "zh-HK", "en")
        second = service.translate("竹編", "zh-HK", "en")

        assert first.translated_text == "en:竹編"
        assert first.from_cache is False
        assert second.from_cache is True
        assert second.provider == GOOGLE
        assert second.quality == first.quality
        assert provider.calls == 1

    def test_force_refresh(self, service, provider):
        service.translate("竹編", "zh-HK", "en")
        refreshed = service.translate("竹編", "zh-HK", "en", force_refresh=True)
        assert refreshed.from_cache is False
        assert provider.calls == 2

    def test_no_cache(self, service, provider):
        service.translate("竹編", "zh-HK", "en", use_cache=False)
        service.translate("竹編", "zh-HK", "en", use_cache=False)
        assert provider.calls == 2
        assert len(service.cache) == 0

    def test_missing_provider(self, service):
        with pytest.raises(TranslationProviderUnavailable):
            service.translate("竹編", "zh-HK", "en", provider=DEEPL)

    def test_provider_error_propagates(self):
        service = TranslationService(providers={GOOGLE: EchoProvider(fail_on={"竹編"})})
        with pytest.raises(TranslationApiError):
            service.translate("竹編", "zh-HK", "en")

    def test_provider_usage(self, service):
        service.translate("竹編", "zh-HK", "en")
        assert service.get_available_providers() == [GOOGLE]
        assert service.get_provider_usage() == {GOOGLE: 1}

    def test_from_settings(self):
        settings = SimpleNamespace(
            google_translate_api_key="g",
            deepl_api_key="d",
            deepl_is_pro=False,
            translation_timeout_seconds=5.0,
            translation_cache_capacity=100,
            translation_cache_expiry_days=7,
            translation_max_concurrency=3,
        )
        service = TranslationService.from_settings(settings)

        assert sorted(service.get_available_providers()) == [DEEPL, GOOGLE]
        assert service.default_provider == DEEPL
        assert service.cache.capacity == 100
        assert service.max_concurrency == 3


class TestBatchTranslate:

    def test_every_text_every_target(self, service):
        job = service.batch_translate(["竹編", "吹糖"], "zh-HK", ["en", "zh-CN"])

        assert job.status == JobStatus.COMPLETED
        assert job.completed_at is not None
        assert job.id.startswith("job_") and len(job.id) == 16
        assert job.results == {
            "竹編": {"en": "en:竹編", "zh-CN": "zh-CN:竹編"},
            "吹糖": {"en": "en:吹糖", "zh-CN": "zh-CN:吹糖"},
        }

    def test_failed_text_keeps_source(self):
        service = TranslationService(providers={GOOGLE: EchoProvider(fail_on={"吹糖"})})
        job = service.batch_translate(["竹編", "吹糖"], "zh-HK", ["en"])

        assert job.status == JobStatus.COMPLETED
        assert job.results["吹糖"] == {"en": "吹糖"}
        assert job.results["竹編"] == {"en": "en:竹編"}

    def test_concurrency_bounded(self):
        provider = EchoProvider(delay=0.05)
        service = TranslationService(providers={GOOGLE: provider})

        service.batch_translate([f"t{i}" for i in range(6)], "en", ["zh-HK"], max_concurrency=2)

        assert provider.calls == 6
        assert provider.peak <= 2

    def test_missing_provider_raises_upfront(self, service):
        with pytest.raises(TranslationProviderUnavailable):
            service.batch_translate(["竹編"], "zh-HK", ["en"], provider=DEEPL)


class TestMultilingualContent:

    def test_fills_missing_locales(self, service):
        content = service.translate_multilingual_content(
            {"zh-HK": "竹編燈籠", "en": "Bamboo lantern"}, ["zh-HK", "en", "zh-CN"]
        )
        assert content == {
            "zh-HK": "竹編燈籠",
            "en": "Bamboo lantern",
            "zh-CN": "zh-CN:竹編燈籠",
        }

    def test_explicit_source(self, service):
        content = service.translate_multilingual_content(
            {"zh-HK": "竹編", "en": "Bamboo"}, ["zh-CN"], source_language="en"
        )
        assert content["zh-CN"] == "zh-CN:Bamboo"

    def test_failure_leaves_locale_missing(self):
        service = TranslationService(providers={GOOGLE: EchoProvider(fail_on={"竹編"})})
        content = service.translate_multilingual_content({"zh-HK": "竹編"}, ["en"])
        assert content == {"zh-HK": "竹編"}

    def test_no_source_text(self, service):
        with pytest.raises(NoSourceContentError):
            service.translate_multilingual_content({}, ["en"])
        with pytest.raises(NoSourceContentError):
            service.translate_multilingual_content({"zh-HK": ""}, ["en"])
