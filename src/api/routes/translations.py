"""
Translation API Routes.

Provider misconfiguration surfaces as 503, provider HTTP failures as 502.
"""

from typing import Dict, List

from fastapi import APIRouter, HTTPException

from core.errors import TranslationApiError, TranslationProviderUnavailable
from core.logging import get_logger
from translation.models import (
    BatchTranslateRequest,
    TranslateRequest,
    TranslationJob,
    TranslationOutcome,
)
from translation.service import get_translation_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api/translations", tags=["Translations"])


@router.post(
    "/translate",
    response_model=TranslationOutcome,
    summary="Translate one text",
)
def translate(request: TranslateRequest) -> TranslationOutcome:
    try:
        return get_translation_service().translate(
            request.text,
            request.source_language,
            request.target_language,
            provider=request.provider,
            use_cache=request.use_cache,
            force_refresh=request.force_refresh,
        )
    except TranslationProviderUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except TranslationApiError as e:
        logger.error("Translation failed", error=str(e), status_code=e.status_code)
        raise HTTPException(status_code=502, detail=str(e))


@router.post(
    "/batch",
    response_model=TranslationJob,
    summary="Translate many texts into many languages",
)
def batch_translate(request: BatchTranslateRequest) -> TranslationJob:
    try:
        return get_translation_service().batch_translate(
            request.texts,
            request.source_language,
            request.target_languages,
            provider=request.provider,
            use_cache=request.use_cache,
        )
    except TranslationProviderUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/providers", summary="Configured translation providers")
def providers() -> Dict[str, List[str]]:
    return {"providers": get_translation_service().get_available_providers()}


@router.get("/usage", summary="Cached translations per provider")
def usage() -> Dict[str, int]:
    return get_translation_service().get_provider_usage()
