"""
Pytest configuration and shared fixtures for the discovery engine tests.
"""
import os
import sys
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

# Add src (and tests, for the fakes module) to path for imports
_ROOT = os.path.dirname(os.path.dirname(__file__))
sys.path.insert(0, os.path.join(_ROOT, "src"))
sys.path.insert(0, os.path.dirname(__file__))

# Load environment variables
from dotenv import load_dotenv
load_dotenv(os.path.join(_ROOT, ".env"))

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-key")

from fakes import FakeSupabase, course_row, craftsman_row, media_row, product_row  # noqa: E402


@pytest.fixture
def catalogue() -> Dict[str, List[Dict[str, Any]]]:
    """A small marketplace: two crafts, every entity type."""
    return {
        "craftsman_profiles": [
            craftsman_row("cm-1", "陳師傅", ["手雕麻將"], "深水埗"),
            craftsman_row("cm-2", "李師傅", ["竹編", "手雕麻將"], "油麻地", experience_years=3),
            craftsman_row("cm-3", "黃師傅", ["竹編"], "深水埗", verified=False),
        ],
        "courses": [
            course_row("co-1", "手雕麻將", "手雕麻將入門"),
            course_row("co-2", "竹編", "竹編燈籠", price=450.0),
            course_row("co-3", "竹編", "已停課程", status="INACTIVE"),
        ],
        "products": [
            product_row("pr-1", "手雕麻將"),
            product_row("pr-2", "竹編", "竹編籃", price=300.0),
            product_row("pr-3", "竹編", "售罄竹籃", inventory=0),
        ],
        "media_files": [
            media_row("md-1", "麻將工作坊.jpg"),
            media_row("md-2", "竹編示範.mp4", file_type="VIDEO"),
        ],
        "users": [
            {"id": "user-1", "email": "u1@example.com", "preferred_language": "zh-HK"},
        ],
        "user_behavior_events": [],
    }


@pytest.fixture
def fake_db(catalogue) -> FakeSupabase:
    return FakeSupabase(catalogue)


@pytest.fixture
def store(fake_db):
    from search.store import ContentStore
    return ContentStore(fake_db)


@pytest.fixture
def behavior_log(fake_db):
    from recs.behavior import BehaviorLog
    return BehaviorLog(fake_db)


# ============================================================================
# Fixtures: Mock Services
# ============================================================================

@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()
    mock_client.table.return_value.select.return_value.execute.return_value.data = []
    mock_client.table.return_value.insert.return_value.execute.return_value.data = [{"id": "test"}]
    return mock_client


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
