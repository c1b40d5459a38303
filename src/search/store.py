"""
Content store over the Supabase marketplace tables.

Adapters and recommenders describe *what* they want with an ``EntityFilter``;
the store renders it into a PostgREST query (equality, ``ilike`` substring,
array containment/overlap, OR groups) and returns raw row dicts. Textual
matching itself is the database's business.

Every query error is re-raised as ``StoreUnavailableError`` so callers can
downgrade exactly the lookup that failed.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from supabase import Client

from config.constants import ENTITY_TABLES, USERS_TABLE
from core.errors import StoreUnavailableError
from core.utils import dedupe_preserving_order


# Embedded relations fetched alongside each entity row
_ENTITY_SELECT: Dict[str, str] = {
    "craftsman": "*, users(email)",
    "course": "*, craftsman_profiles(id, users(email))",
    "product": "*, craftsman_profiles(id, users(email))",
    "media": "*, users(email)",
}


@dataclass(frozen=True)
class Condition:
    """One ``column operator value`` term of an OR group."""
    column: str
    operator: str  # ilike | cs | ov | eq
    value: Any


@dataclass
class EntityFilter:
    """Store-agnostic description of a filtered entity fetch."""
    equals: Dict[str, Any] = field(default_factory=dict)
    greater_than: Dict[str, Any] = field(default_factory=dict)
    contains: Dict[str, List[str]] = field(default_factory=dict)
    ilike: Dict[str, str] = field(default_factory=dict)
    any_of: List[Condition] = field(default_factory=list)
    ids: Optional[List[str]] = None
    exclude_ids: List[str] = field(default_factory=list)
    order_by: Optional[str] = None
    descending: bool = True
    limit: Optional[int] = None


def _quote(value: str) -> str:
    """Quote a value for a PostgREST or= expression."""
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _render_condition(cond: Condition) -> str:
    if cond.operator == "ilike":
        return f"{cond.column}.ilike.{_quote('*' + str(cond.value) + '*')}"
    if cond.operator in ("cs", "ov"):
        items = ",".join(_quote(v) for v in cond.value)
        return f"{cond.column}.{cond.operator}.{{{items}}}"
    return f"{cond.column}.{cond.operator}.{_quote(cond.value)}"


def render_or(conditions: Sequence[Condition]) -> str:
    return ",".join(_render_condition(c) for c in conditions)


def ilike_pattern(text: str) -> str:
    """Case-insensitive substring pattern for ``.ilike()``."""
    return f"%{text}%"


class ContentStore:
    """Filtered fetches against craftsman_profiles / courses / products / media_files."""

    def __init__(self, supabase: Optional[Client] = None):
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            from config.database import get_supabase_client
            self._supabase = get_supabase_client()
        return self._supabase

    # =========================================================================
    # Query building
    # =========================================================================

    def _apply(self, query, flt: EntityFilter):
        for column, value in flt.equals.items():
            query = query.eq(column, value)
        for column, value in flt.greater_than.items():
            query = query.gt(column, value)
        for column, values in flt.contains.items():
            query = query.contains(column, list(values))
        for column, text in flt.ilike.items():
            query = query.ilike(column, ilike_pattern(text))
        if flt.any_of:
            query = query.or_(render_or(flt.any_of))
        if flt.ids is not None:
            query = query.in_("id", list(flt.ids))
        if flt.exclude_ids:
            query = query.filter("id", "not.in", f"({','.join(flt.exclude_ids)})")
        if flt.order_by:
            query = query.order(flt.order_by, desc=flt.descending)
        if flt.limit is not None:
            query = query.limit(flt.limit)
        return query

    def fetch(self, entity_type: str, flt: EntityFilter) -> List[Dict[str, Any]]:
        """Rows of ``entity_type`` matching ``flt``."""
        table = ENTITY_TABLES[entity_type]
        if flt.ids is not None and not flt.ids:
            return []
        try:
            query = self.supabase.table(table).select(_ENTITY_SELECT[entity_type])
            result = self._apply(query, flt).execute()
        except Exception as e:
            raise StoreUnavailableError(f"{table} query failed: {e}") from e
        return list(result.data or [])

    def count(self, entity_type: str, flt: Optional[EntityFilter] = None) -> int:
        """Exact row count for ``entity_type`` under ``flt``."""
        table = ENTITY_TABLES[entity_type]
        try:
            query = self.supabase.table(table).select("id", count="exact")
            result = self._apply(query, flt or EntityFilter()).limit(1).execute()
        except Exception as e:
            raise StoreUnavailableError(f"{table} count failed: {e}") from e
        return int(result.count or 0)

    def column_values(
        self,
        entity_type: str,
        column: str,
        flt: Optional[EntityFilter] = None,
    ) -> List[Any]:
        """One column of every matching row (input for Python-side grouping)."""
        table = ENTITY_TABLES[entity_type]
        try:
            query = self.supabase.table(table).select(column)
            result = self._apply(query, flt or EntityFilter()).execute()
        except Exception as e:
            raise StoreUnavailableError(f"{table}.{column} scan failed: {e}") from e
        return [row.get(column) for row in (result.data or [])]

    # =========================================================================
    # Joins
    # =========================================================================

    def get_entities(self, entity_type: str, ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Current state of several entities, keyed by id (missing ids are absent)."""
        wanted = dedupe_preserving_order(i for i in ids if i)
        if not wanted:
            return {}
        rows = self.fetch(entity_type, EntityFilter(ids=wanted))
        return {str(row["id"]): row for row in rows if row.get("id") is not None}

    def get_entity(self, entity_type: str, entity_id: str) -> Optional[Dict[str, Any]]:
        return self.get_entities(entity_type, [entity_id]).get(str(entity_id))

    # =========================================================================
    # Misc lookups
    # =========================================================================

    def distinct_locations(self, text: str, limit: int) -> List[str]:
        """Distinct workshop locations containing ``text`` (case-insensitive)."""
        values = self.column_values(
            "craftsman",
            "workshop_location",
            EntityFilter(ilike={"workshop_location": text}, limit=max(limit * 5, limit)),
        )
        return dedupe_preserving_order(v for v in values if v)[:limit]

    def get_user_language(self, user_id: str) -> Optional[str]:
        try:
            result = (
                self.supabase
                .table(USERS_TABLE)
                .select("preferred_language")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise StoreUnavailableError(f"users lookup failed: {e}") from e
        if not result.data:
            return None
        return result.data[0].get("preferred_language")


# =============================================================================
# Singleton
# =============================================================================

_store: Optional[ContentStore] = None
_store_lock = threading.Lock()


def get_content_store() -> ContentStore:
    """Get or create the ContentStore singleton (thread-safe)."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = ContentStore()
    return _store
