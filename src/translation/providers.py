"""Google Translate and DeepL HTTP providers."""

from typing import Any, Dict, List, Optional

import requests

from config.constants import SUPPORTED_LANGUAGES
from core.errors import TranslationApiError
from core.logging import get_logger

logger = get_logger(__name__)


class TranslationProvider:
    """A machine translation backend."""

    name: str = ""

    def translate(self, text: str, source: str, target: str) -> str:
        raise NotImplementedError

    def batch_translate(self, texts: List[str], source: str, target: str) -> List[str]:
        return [self.translate(text, source, target) for text in texts]

    def supported_languages(self) -> List[str]:
        return list(SUPPORTED_LANGUAGES)


def _post(http, provider: str, url: str, **kwargs) -> Dict[str, Any]:
    try:
        resp = http.post(url, **kwargs)
    except requests.RequestException as e:
        raise TranslationApiError(f"{provider} request failed: {e}") from e
    if resp.status_code >= 400:
        raise TranslationApiError(
            f"{provider} API error ({resp.status_code}): {resp.text}",
            status_code=resp.status_code,
        )
    return resp.json()


class GoogleTranslateProvider(TranslationProvider):
    name = "google-translate"
    BASE_URL = "https://translation.googleapis.com/language/translate/v2"

    _TO_GOOGLE = {"zh-HK": "zh-TW", "zh-CN": "zh-CN", "en": "en"}
    _FROM_GOOGLE = {"zh-TW": "zh-HK", "zh-CN": "zh-CN", "en": "en"}

    def __init__(self, api_key: str, timeout: float = 10.0, http: Optional[Any] = None):
        self.api_key = api_key
        self.timeout = timeout
        self._http = http or requests

    def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return _post(
            self._http, "Google Translate", url,
            params={"key": self.api_key},
            json=payload,
            timeout=self.timeout,
        )

    def translate(self, text: str, source: str, target: str) -> str:
        return self.batch_translate([text], source, target)[0]

    def batch_translate(self, texts: List[str], source: str, target: str) -> List[str]:
        data = self._post(self.BASE_URL, {
            "q": texts,
            "source": self._TO_GOOGLE.get(source, source),
            "target": self._TO_GOOGLE.get(target, target),
            "format": "text",
        })
        return [t["translatedText"] for t in data["data"]["translations"]]

    def detect_language(self, text: str) -> str:
        """Detected supported language; ``en`` when detection fails."""
        try:
            data = self._post(f"{self.BASE_URL}/detect", {"q": text})
            code = data["data"]["detections"][0][0]["language"]
        except Exception as e:
            logger.warning("Language detection failed", error=str(e))
            return "en"
        return self._FROM_GOOGLE.get(code, "en")


class DeepLProvider(TranslationProvider):
    name = "deepl"

    # DeepL has a single Chinese target
    _TO_DEEPL = {"zh-HK": "ZH", "zh-CN": "ZH", "en": "EN"}

    def __init__(
        self,
        api_key: str,
        is_pro: bool = False,
        timeout: float = 10.0,
        http: Optional[Any] = None,
    ):
        self.api_key = api_key
        self.base_url = "https://api.deepl.com/v2" if is_pro else "https://api-free.deepl.com/v2"
        self.timeout = timeout
        self._http = http or requests

    def translate(self, text: str, source: str, target: str) -> str:
        return self.batch_translate([text], source, target)[0]

    def batch_translate(self, texts: List[str], source: str, target: str) -> List[str]:
        form = [("text", text) for text in texts] + [
            ("source_lang", self._TO_DEEPL.get(source, source)),
            ("target_lang", self._TO_DEEPL.get(target, target)),
        ]
        data = _post(
            self._http, "DeepL", f"{self.base_url}/translate",
            data=form,
            headers={"Authorization": f"DeepL-Auth-Key {self.api_key}"},
            timeout=self.timeout,
        )
        return [t["text"] for t in data["translations"]]
