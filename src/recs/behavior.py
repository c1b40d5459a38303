"""
Behavior event log access and preference profile derivation.

The ``user_behavior_events`` table is append-only and shared by every request.
This module only appends (``track_event``) and reads. PostgREST has no GROUP
BY, so aggregates page through every event in their window and group in
Python.

Profiles are recomputed per request from the trailing window; nothing here is
materialized.
"""

import threading
from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from supabase import Client

from config.constants import DEFAULT_LANGUAGE, EVENT_WEIGHTS, EVENTS_TABLE
from config.settings import get_settings
from core.errors import StoreUnavailableError
from core.logging import get_logger
from core.utils import isoformat, parse_timestamp, to_float, window_start
from recs.models import BehaviorEvent, PriceRange, UserPreferenceProfile, ViewRecord
from search.store import ContentStore, get_content_store

logger = get_logger(__name__)


class BehaviorLog:
    """Reads and appends behavior events."""

    def __init__(self, supabase: Optional[Client] = None, page_size: int = 1000):
        self._supabase = supabase
        self.page_size = page_size

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            from config.database import get_supabase_client
            self._supabase = get_supabase_client()
        return self._supabase

    def _events(self, columns: str = "*", count: Optional[str] = None):
        if count:
            return self.supabase.table(EVENTS_TABLE).select(columns, count=count)
        return self.supabase.table(EVENTS_TABLE).select(columns)

    # =========================================================================
    # Writes
    # =========================================================================

    def track_event(self, event: BehaviorEvent) -> bool:
        """
        Append one event. Returns False (and logs) instead of raising, so a
        tracking failure never breaks the interaction being tracked.
        """
        try:
            self.supabase.table(EVENTS_TABLE).insert({
                "user_id": event.user_id,
                "event_type": event.event_type.value,
                "entity_type": event.entity_type.value,
                "entity_id": event.entity_id,
                "metadata": event.metadata,
                "session_id": event.session_id,
                "created_at": isoformat(event.timestamp),
            }).execute()
            return True
        except Exception as e:
            logger.warning(
                "Failed to track behavior event",
                event_type=event.event_type.value,
                entity_type=event.entity_type.value,
                error=str(e),
            )
            return False

    # =========================================================================
    # Reads
    # =========================================================================

    def _scan(self, build: Callable[[], Any], label: str) -> List[Dict[str, Any]]:
        """
        Every row of the query made by ``build``, fetched ``page_size`` rows
        at a time. The query must carry a total ordering so pages neither
        overlap nor skip rows; a fresh builder is made per page.
        """
        rows: List[Dict[str, Any]] = []
        offset = 0
        while True:
            try:
                result = build().range(offset, offset + self.page_size - 1).execute()
            except Exception as e:
                raise StoreUnavailableError(f"{label} failed: {e}") from e
            page = list(result.data or [])
            rows.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size
        if offset:
            logger.debug("Paged event scan", scan=label, rows=len(rows), pages=offset // self.page_size + 1)
        return rows

    def interaction_counts(
        self,
        entity_type: str,
        entity_ids: Iterable[str],
        event_types: Iterable[str],
        since: datetime,
    ) -> Dict[str, int]:
        """Events of ``event_types`` per entity id since ``since`` (absent = 0)."""
        ids = sorted({str(i) for i in entity_ids if i})
        if not ids:
            return {}
        rows = self._scan(
            lambda: self._events("entity_id")
            .eq("entity_type", entity_type)
            .in_("entity_id", ids)
            .in_("event_type", sorted(event_types))
            .gte("created_at", isoformat(since))
            .order("id"),
            "interaction count",
        )
        return dict(Counter(str(row["entity_id"]) for row in rows))

    def top_entities(
        self,
        entity_type: str,
        event_types: Iterable[str],
        since: datetime,
        limit: int,
    ) -> List[Tuple[str, int]]:
        """``(entity_id, interaction_count)`` pairs over the whole window, most interacted first."""
        rows = self._scan(
            lambda: self._events("entity_id")
            .eq("entity_type", entity_type)
            .in_("event_type", sorted(event_types))
            .gte("created_at", isoformat(since))
            .order("id"),
            "trending scan",
        )
        counts = Counter(str(row["entity_id"]) for row in rows if row.get("entity_id"))
        return counts.most_common(limit)

    def user_events(self, user_id: str, since: datetime, limit: int) -> List[Dict[str, Any]]:
        """A user's events since ``since``, newest first."""
        try:
            result = (
                self._events("event_type, entity_type, entity_id, metadata, created_at")
                .eq("user_id", user_id)
                .gte("created_at", isoformat(since))
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise StoreUnavailableError(f"user event scan failed: {e}") from e
        return list(result.data or [])

    def search_events(
        self,
        since: datetime,
        until: Optional[datetime] = None,
        query_contains: Optional[str] = None,
        user_id: Optional[str] = None,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        ``search`` events in ``[since, until)`` with optional query substring.

        Without ``limit`` every matching event is returned (paged).
        """
        def build():
            query = (
                self._events("user_id, metadata, created_at")
                .eq("event_type", "search")
                .gte("created_at", isoformat(since))
            )
            if until is not None:
                query = query.lt("created_at", isoformat(until))
            if query_contains:
                query = query.ilike("metadata->>query", f"%{query_contains}%")
            if user_id:
                query = query.eq("user_id", user_id)
            if newest_first:
                query = query.order("created_at", desc=True)
            return query.order("id")

        if limit is None:
            return self._scan(build, "search event scan")
        try:
            result = build().limit(limit).execute()
        except Exception as e:
            raise StoreUnavailableError(f"search event scan failed: {e}") from e
        return list(result.data or [])

    def count_events(
        self,
        event_type: str,
        since: datetime,
        until: Optional[datetime] = None,
        metadata_equals: Optional[Dict[str, str]] = None,
    ) -> int:
        try:
            query = (
                self._events("id", count="exact")
                .eq("event_type", event_type)
                .gte("created_at", isoformat(since))
            )
            if until is not None:
                query = query.lt("created_at", isoformat(until))
            for key, value in (metadata_equals or {}).items():
                query = query.eq(f"metadata->>{key}", value)
            result = query.limit(1).execute()
        except Exception as e:
            raise StoreUnavailableError(f"{event_type} count failed: {e}") from e
        return int(result.count or 0)


# =============================================================================
# Preference Profiles
# =============================================================================

def event_weight(event_type: str) -> int:
    return EVENT_WEIGHTS.get(event_type, 1)


def craft_type_of(entity_type: str, row: Dict[str, Any]) -> Optional[str]:
    """Primary craft type of an entity row."""
    if entity_type == "craftsman":
        specialties = row.get("craft_specialties") or []
        return specialties[0] if specialties else None
    if entity_type in ("course", "product"):
        return row.get("craft_category") or None
    return None


def price_range_from(prices: Sequence[float]) -> Optional[PriceRange]:
    """
    Preferred price band from weighted price interactions.

    Needs at least three samples; the band spans half the first quartile to
    one and a half times the third quartile.
    """
    if len(prices) < 3:
        return None
    ordered = sorted(prices)
    q1 = ordered[int(len(ordered) * 0.25)]
    q3 = ordered[int(len(ordered) * 0.75)]
    return PriceRange(min=max(0.0, q1 * 0.5), max=q3 * 1.5)


class UserProfileService:
    """Derives ``UserPreferenceProfile`` from the event log."""

    def __init__(
        self,
        behavior_log: Optional[BehaviorLog] = None,
        store: Optional[ContentStore] = None,
        window_days: int = 30,
        event_limit: int = 1000,
    ):
        self._log = behavior_log
        self._store = store
        self.window_days = window_days
        self.event_limit = event_limit

    @property
    def log(self) -> BehaviorLog:
        if self._log is None:
            self._log = get_behavior_log()
        return self._log

    @property
    def store(self) -> ContentStore:
        if self._store is None:
            self._store = get_content_store()
        return self._store

    def default_profile(self, user_id: str) -> UserPreferenceProfile:
        return UserPreferenceProfile(user_id=user_id, preferred_language=DEFAULT_LANGUAGE)

    def get_preferences(self, user_id: str) -> UserPreferenceProfile:
        """
        Build the profile; any failure yields the default (empty) profile.

        Craft-type affinity sums event weights per craft type of the touched
        entity; the top 10 are kept, highest first.
        """
        try:
            return self._build(user_id)
        except Exception as e:
            logger.warning("Failed to build preference profile", user_id=user_id, error=str(e))
            return self.default_profile(user_id)

    def _build(self, user_id: str) -> UserPreferenceProfile:
        language = self.store.get_user_language(user_id) or DEFAULT_LANGUAGE
        events = self.log.user_events(
            user_id, window_start(self.window_days), self.event_limit
        )

        ids_by_type: Dict[str, List[str]] = defaultdict(list)
        for event in events:
            if event.get("entity_type") in ("craftsman", "course", "product"):
                ids_by_type[event["entity_type"]].append(str(event.get("entity_id")))

        entities: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for entity_type, ids in ids_by_type.items():
            for entity_id, row in self.store.get_entities(entity_type, ids).items():
                entities[(entity_type, entity_id)] = row

        affinity: Dict[str, float] = defaultdict(float)
        prices: List[float] = []
        view_history: List[ViewRecord] = []

        for event in events:
            event_type = event.get("event_type")
            entity_type = event.get("entity_type")
            entity_id = str(event.get("entity_id"))
            if event_type == "view":
                view_history.append(ViewRecord(
                    entity_type=entity_type,
                    entity_id=entity_id,
                    timestamp=parse_timestamp(event.get("created_at")),
                    duration=to_float((event.get("metadata") or {}).get("duration")),
                ))

            row = entities.get((entity_type, entity_id))
            if row is None:
                continue
            weight = event_weight(event_type)
            craft_type = craft_type_of(entity_type, row)
            if craft_type:
                affinity[craft_type] += weight
            if entity_type in ("course", "product"):
                price = to_float(row.get("price"))
                if price and price > 0:
                    prices.extend([price] * weight)

        # Stable on ties: first-seen (most recent) craft type wins
        craft_types = [
            ct for ct, _ in sorted(affinity.items(), key=lambda kv: kv[1], reverse=True)
        ][:10]

        return UserPreferenceProfile(
            user_id=user_id,
            craft_types=craft_types,
            preferred_language=language,
            price_range=price_range_from(prices),
            interests=list(craft_types),
            view_history=view_history[:100],
        )


# =============================================================================
# Singletons
# =============================================================================

_behavior_log: Optional[BehaviorLog] = None
_profile_service: Optional[UserProfileService] = None
_lock = threading.Lock()


def get_behavior_log() -> BehaviorLog:
    """Get or create the BehaviorLog singleton (thread-safe)."""
    global _behavior_log
    if _behavior_log is None:
        with _lock:
            if _behavior_log is None:
                _behavior_log = BehaviorLog(page_size=get_settings().event_page_size)
    return _behavior_log


def get_profile_service() -> UserProfileService:
    """Get or create the UserProfileService singleton (thread-safe)."""
    global _profile_service
    if _profile_service is None:
        with _lock:
            if _profile_service is None:
                settings = get_settings()
                _profile_service = UserProfileService(
                    window_days=settings.profile_window_days,
                    event_limit=settings.profile_event_limit,
                )
    return _profile_service
