"""Authoritative in-memory activity collection.

The store reconciles one bulk snapshot with an at-least-once, unordered
stream of change events. Writers (``load`` and ``apply_change``) serialize on
a single lock; the committed state is an immutable :class:`StoreView` that is
swapped in one assignment, so readers never block and never see a
half-applied event.
"""

from __future__ import annotations

import logging
import threading
from bisect import bisect_left
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, List, Mapping, Tuple

from cachetools import TTLCache

from .config import (
    INGEST_WARNING_HISTORY,
    PENDING_EVENT_BUFFER_SIZE,
    TOMBSTONE_CACHE_SIZE,
    TOMBSTONE_TTL_SECONDS,
)
from .errors import LoadCancelledError, RecordFormatError
from .location import DEFAULT_RESOLVER, LocationResolver
from .models import (
    OP_DELETE,
    OP_INSERT,
    Activity,
    ChangeEvent,
    IngestWarning,
    ResolvedLocation,
)
from .records import parse_activity_row

LOGGER = logging.getLogger(__name__)

WARN_FALLBACK_LOCATION = "fallback_location"
WARN_SKIPPED_ROW = "skipped_row"
WARN_SKIPPED_EVENT = "skipped_event"
WARN_DROPPED_EVENT = "dropped_event"


@dataclass(frozen=True, slots=True)
class StoreView:
    """One committed state: the ordered activities and their generation."""

    activities: Tuple[Activity, ...]
    generation: int


def _order_key(activity: Activity) -> float:
    # Newest first; bisect needs an ascending key.
    return -activity.created_at.timestamp()


class ActivityStore:
    """Deduplicated, newest-first collection of activities for one session."""

    def __init__(
        self,
        *,
        resolver: LocationResolver = DEFAULT_RESOLVER,
        pending_limit: int = PENDING_EVENT_BUFFER_SIZE,
        tombstone_size: int = TOMBSTONE_CACHE_SIZE,
        tombstone_ttl: float = TOMBSTONE_TTL_SECONDS,
        warning_history: int = INGEST_WARNING_HISTORY,
    ) -> None:
        self._resolver = resolver
        self._write_lock = threading.Lock()
        self._view = StoreView((), 0)
        self._order: List[Activity] = []
        self._by_id: Dict[str, Activity] = {}
        self._loaded = False
        self._pending: Deque[ChangeEvent] = deque()
        self._pending_limit = max(0, pending_limit)
        self._tombstones: TTLCache[str, bool] = TTLCache(
            maxsize=max(1, tombstone_size), ttl=tombstone_ttl
        )
        self._warnings: Deque[IngestWarning] = deque(maxlen=max(1, warning_history))
        self._warnings_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads (non-blocking, last committed state)
    # ------------------------------------------------------------------
    def view(self) -> StoreView:
        return self._view

    def snapshot(self) -> Tuple[Activity, ...]:
        """Return the committed activities, newest first."""

        return self._view.activities

    @property
    def generation(self) -> int:
        return self._view.generation

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def get(self, activity_id: Any) -> Activity | None:
        key = str(activity_id)
        for activity in self._view.activities:
            if activity.id == key:
                return activity
        return None

    def __len__(self) -> int:
        return len(self._view.activities)

    def __contains__(self, activity_id: object) -> bool:
        return self.get(activity_id) is not None

    def warnings(self) -> Tuple[IngestWarning, ...]:
        """Return recent ingest warnings (fallback locations, skipped input)."""

        with self._warnings_lock:
            return tuple(self._warnings)

    def pending_count(self) -> int:
        with self._write_lock:
            return len(self._pending)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def load(
        self,
        rows: Iterable[Mapping[str, Any]],
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Replace the contents with the bulk-fetched ``rows``.

        Unusable rows are skipped and reported; they never abort the batch.
        Row parsing happens outside the writer lock; the commit, and the replay
        of any change events buffered before the load, happen under it.

        Raises:
            LoadCancelledError: If ``cancel`` is set before the commit. Nothing
                observable changes in that case.
        """

        parsed: List[Activity] = []
        seen: set[str] = set()
        warnings: List[IngestWarning] = []
        for index, row in enumerate(rows):
            if cancel is not None and cancel.is_set():
                raise LoadCancelledError(f"Load cancelled after {index} rows")
            try:
                activity, resolved = parse_activity_row(row, self._resolver)
            except RecordFormatError as exc:
                LOGGER.warning("Skipping activity row %d: %s", index, exc)
                warnings.append(
                    IngestWarning(WARN_SKIPPED_ROW, _row_id(row), str(exc))
                )
                continue
            if resolved.used_fallback:
                warnings.append(_fallback_warning(activity, resolved))
            if activity.id in seen:
                LOGGER.debug("Ignoring repeated row for activity %s in batch", activity.id)
                continue
            seen.add(activity.id)
            parsed.append(activity)

        with self._write_lock:
            if cancel is not None and cancel.is_set():
                raise LoadCancelledError("Load cancelled before commit")
            live = [a for a in parsed if a.id not in self._tombstones]
            if len(live) != len(parsed):
                LOGGER.info(
                    "Dropped %d deleted activities from bulk load", len(parsed) - len(live)
                )
            live.sort(key=_order_key)
            self._order = live
            self._by_id = {a.id: a for a in live}
            reload = self._loaded
            self._loaded = True
            generation = self._view.generation + 1 if reload else 1
            self._view = StoreView(tuple(live), generation)
            self._record_warnings(warnings)
            LOGGER.info(
                "Loaded %d activities (%d warnings, generation=%d)",
                len(live),
                len(warnings),
                generation,
            )
            pending = list(self._pending)
            self._pending.clear()
            if pending:
                LOGGER.info("Replaying %d change events received before load", len(pending))
            for event in pending:
                self._apply_locked(event)

    def apply_change(self, event: ChangeEvent | Mapping[str, Any]) -> bool:
        """Apply one change event.

        Returns ``True`` when the committed state changed (and the generation
        advanced by exactly one), ``False`` for no-ops such as duplicate
        inserts, unknown ids or events buffered before the bulk load.
        """

        if not isinstance(event, ChangeEvent):
            try:
                event = ChangeEvent.from_payload(event)
            except RecordFormatError as exc:
                LOGGER.warning("Ignoring change event: %s", exc)
                self._record_warnings([IngestWarning(WARN_SKIPPED_EVENT, None, str(exc))])
                return False
        with self._write_lock:
            if not self._loaded:
                self._buffer_locked(event)
                return False
            return self._apply_locked(event)

    # ------------------------------------------------------------------
    # Internals (caller holds the writer lock)
    # ------------------------------------------------------------------
    def _buffer_locked(self, event: ChangeEvent) -> None:
        if self._pending_limit == 0:
            LOGGER.warning("Dropping %s event received before load", event.operation)
            self._record_warnings(
                [IngestWarning(WARN_DROPPED_EVENT, event.activity_id, "buffer disabled")]
            )
            return
        if len(self._pending) >= self._pending_limit:
            dropped = self._pending.popleft()
            LOGGER.warning(
                "Pending event buffer full (%d); dropping oldest %s for activity %s",
                self._pending_limit,
                dropped.operation,
                dropped.activity_id,
            )
            self._record_warnings(
                [IngestWarning(WARN_DROPPED_EVENT, dropped.activity_id, "buffer full")]
            )
        self._pending.append(event)

    def _apply_locked(self, event: ChangeEvent) -> bool:
        activity_id = event.activity_id
        if activity_id is None:
            LOGGER.warning("Ignoring %s event without an id", event.operation)
            self._record_warnings(
                [IngestWarning(WARN_SKIPPED_EVENT, None, f"{event.operation} without id")]
            )
            return False
        if event.operation == OP_INSERT:
            return self._insert_locked(activity_id, event.row)
        if event.operation == OP_DELETE:
            return self._delete_locked(activity_id)
        return self._update_locked(activity_id, event.row)

    def _insert_locked(self, activity_id: str, row: Mapping[str, Any]) -> bool:
        if activity_id in self._tombstones:
            LOGGER.debug("Ignoring insert for deleted activity %s", activity_id)
            return False
        if activity_id in self._by_id:
            LOGGER.debug("Duplicate insert for activity %s; no-op", activity_id)
            return False
        activity = self._parse_event_row(row, activity_id)
        if activity is None:
            return False
        self._order.insert(bisect_left(self._order, _order_key(activity), key=_order_key), activity)
        self._by_id[activity_id] = activity
        self._commit_locked()
        return True

    def _update_locked(self, activity_id: str, row: Mapping[str, Any]) -> bool:
        existing = self._by_id.get(activity_id)
        if existing is None:
            LOGGER.debug("Update for unknown activity %s ignored", activity_id)
            return False
        merged = existing.to_row()
        if "location" not in row and ("latitude" in row or "longitude" in row):
            # A single column moves only that axis of the stored point.
            merged.pop("location", None)
            merged["latitude"] = existing.location.lat
            merged["longitude"] = existing.location.lng
        merged.update(row)
        updated = self._parse_event_row(merged, activity_id)
        if updated is None:
            return False
        if updated == existing:
            LOGGER.debug("Update for activity %s changes nothing; no-op", activity_id)
            return False
        index = _index_of(self._order, activity_id)
        if updated.created_at == existing.created_at:
            self._order[index] = updated
        else:
            del self._order[index]
            self._order.insert(
                bisect_left(self._order, _order_key(updated), key=_order_key), updated
            )
        self._by_id[activity_id] = updated
        self._commit_locked()
        return True

    def _delete_locked(self, activity_id: str) -> bool:
        self._tombstones[activity_id] = True
        if activity_id not in self._by_id:
            LOGGER.debug("Delete for unknown activity %s ignored", activity_id)
            return False
        del self._order[_index_of(self._order, activity_id)]
        del self._by_id[activity_id]
        self._commit_locked()
        return True

    def _parse_event_row(self, row: Mapping[str, Any], activity_id: str) -> Activity | None:
        try:
            activity, resolved = parse_activity_row(row, self._resolver)
        except RecordFormatError as exc:
            LOGGER.warning("Ignoring change for activity %s: %s", activity_id, exc)
            self._record_warnings([IngestWarning(WARN_SKIPPED_EVENT, activity_id, str(exc))])
            return None
        if resolved.used_fallback:
            self._record_warnings([_fallback_warning(activity, resolved)])
        return activity

    def _commit_locked(self) -> None:
        self._view = StoreView(tuple(self._order), self._view.generation + 1)

    def _record_warnings(self, warnings: Iterable[IngestWarning]) -> None:
        with self._warnings_lock:
            self._warnings.extend(warnings)


def _index_of(order: List[Activity], activity_id: str) -> int:
    for index, activity in enumerate(order):
        if activity.id == activity_id:
            return index
    raise KeyError(activity_id)


def _row_id(row: Any) -> str | None:
    if isinstance(row, Mapping) and row.get("id") is not None:
        return str(row.get("id"))
    return None


def _fallback_warning(activity: Activity, resolved: ResolvedLocation) -> IngestWarning:
    return IngestWarning(
        WARN_FALLBACK_LOCATION,
        activity.id,
        resolved.reason or "unusable location",
    )


__all__ = [
    "ActivityStore",
    "StoreView",
    "WARN_FALLBACK_LOCATION",
    "WARN_SKIPPED_ROW",
    "WARN_SKIPPED_EVENT",
    "WARN_DROPPED_EVENT",
]
