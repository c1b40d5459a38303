"""
Route modules for the API.

Each module exports a FastAPI APIRouter with endpoints
for a specific domain/feature.
"""

from api.routes import health
from api.routes import recommendations
from api.routes import search
from api.routes import translations

__all__ = ["health", "recommendations", "search", "translations"]
