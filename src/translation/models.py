"""
Pydantic models for translation requests, quality reports and batch jobs.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from core.utils import utc_now

SupportedLanguage = Literal["zh-HK", "zh-CN", "en"]


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TranslationQuality(BaseModel):
    """Heuristic quality report for one translation."""
    score: float = Field(..., ge=0.0, le=1.0, description="1 is perfect")
    confidence: float = Field(..., ge=0.0, le=1.0)
    needs_review: bool
    issues: List[str] = Field(default_factory=list)


# Reported for cache hits stored without a quality report
DEFAULT_CACHED_QUALITY = TranslationQuality(score=0.8, confidence=0.8, needs_review=False)


class TranslationOutcome(BaseModel):
    translated_text: str
    provider: str
    quality: TranslationQuality
    from_cache: bool = False


class TranslationJob(BaseModel):
    """Result of a batch translation: ``results[text][target_language]``."""
    id: str
    texts: List[str]
    source_language: str
    target_languages: List[str]
    status: JobStatus = JobStatus.PENDING
    results: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


# ============================================================================
# API Request Models
# ============================================================================

class TranslateRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)
    source_language: SupportedLanguage
    target_language: SupportedLanguage
    provider: Optional[str] = None
    use_cache: bool = True
    force_refresh: bool = False


class BatchTranslateRequest(BaseModel):
    texts: List[str] = Field(..., min_length=1, max_length=100)
    source_language: SupportedLanguage
    target_languages: List[SupportedLanguage] = Field(..., min_length=1)
    provider: Optional[str] = None
    use_cache: bool = True
