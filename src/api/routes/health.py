"""
Health check endpoints.
"""

from typing import Any, Dict

from fastapi import APIRouter

from config.settings import get_settings
from config.database import get_supabase_client_optional


router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> Dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "discovery-api",
    }


@router.get("/health/detailed")
def detailed_health_check() -> Dict[str, Any]:
    """
    Detailed health check with dependency status.

    Checks:
    - Configuration loaded
    - Supabase connection (one-row read of craftsman_profiles)
    - Configured translation providers
    """
    settings = get_settings()

    supabase_status = "unknown"
    supabase_error = None
    try:
        client = get_supabase_client_optional()
        if client:
            client.table("craftsman_profiles").select("id").limit(1).execute()
            supabase_status = "connected"
        else:
            supabase_status = "not_configured"
    except Exception as e:
        supabase_status = "error"
        supabase_error = str(e)

    providers = []
    if settings.deepl_api_key:
        providers.append("deepl")
    if settings.google_translate_api_key:
        providers.append("google-translate")

    return {
        "status": "healthy" if supabase_status == "connected" else "degraded",
        "service": "discovery-api",
        "environment": settings.environment,
        "checks": {
            "config": "ok",
            "supabase": {
                "status": supabase_status,
                "error": supabase_error,
            },
            "translation_providers": providers,
        },
    }
