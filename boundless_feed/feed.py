"""Store + filter coupling with generation-aware memoisation."""

from __future__ import annotations

import threading
from typing import List, Tuple

from .filtering import DEFAULT_ENGINE, FilterEngine
from .models import Activity, FilterCriteria, GeoCoordinate
from .store import ActivityStore

_CacheKey = Tuple[int, FilterCriteria, GeoCoordinate]


class FeedView:
    """Visible result set for a store, recomputed when any input changes.

    Only the most recent result is kept. The key includes the store
    generation, so a commit always forces re-evaluation.
    """

    def __init__(self, store: ActivityStore, engine: FilterEngine = DEFAULT_ENGINE) -> None:
        self._store = store
        self._engine = engine
        self._lock = threading.Lock()
        self._cached_key: _CacheKey | None = None
        self._cached: Tuple[Activity, ...] = ()

    def visible(self, criteria: FilterCriteria, reference_point: GeoCoordinate) -> List[Activity]:
        view = self._store.view()
        key: _CacheKey = (view.generation, criteria, reference_point)
        with self._lock:
            if self._cached_key == key:
                return list(self._cached)
        result = self._engine.evaluate(view.activities, criteria, reference_point)
        with self._lock:
            self._cached_key = key
            self._cached = tuple(result)
        return result

    def invalidate(self) -> None:
        with self._lock:
            self._cached_key = None
            self._cached = ()


__all__ = ["FeedView"]
