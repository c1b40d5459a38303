"""
Heuristic translation quality assessment.

Starts at 1.0 and deducts per issue found; anything with an issue or a score
under 0.7 is flagged for review.
"""

import re

from translation.models import TranslationQuality

_TAG = re.compile(r"<[^>]+>")
_CJK = re.compile(r"[\u4e00-\u9fff]")


class TranslationQualityAssessment:

    @staticmethod
    def assess(
        source_text: str,
        translated_text: str,
        source_language: str,
        target_language: str,
    ) -> TranslationQuality:
        issues = []
        score = 1.0
        confidence = 0.8

        if not translated_text or not translated_text.strip():
            issues.append("Empty translation")
            score = 0.0
            confidence = 0.0

        if source_text:
            ratio = len(translated_text) / len(source_text)
            if ratio < 0.3 or ratio > 3.0:
                issues.append("Unusual length ratio")
                score -= 0.2

        if source_text == translated_text and source_language != target_language:
            issues.append("Text appears untranslated")
            score -= 0.3

        if "[AUTO-TRANSLATED" in translated_text:
            issues.append("Contains translation artifacts")
            score -= 0.1

        if len(_TAG.findall(source_text)) != len(_TAG.findall(translated_text)):
            issues.append("HTML markup not preserved")
            score -= 0.1

        if target_language.startswith("zh") and not _CJK.search(translated_text):
            issues.append("No Chinese characters in Chinese translation")
            score -= 0.3

        score = max(0.0, min(1.0, score))
        return TranslationQuality(
            score=score,
            confidence=confidence,
            needs_review=score < 0.7 or bool(issues),
            issues=issues,
        )

    @staticmethod
    def should_use_human_review(quality: TranslationQuality) -> bool:
        return quality.needs_review or quality.score < 0.6
