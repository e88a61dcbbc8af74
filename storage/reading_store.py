from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque, Dict, Iterable, List, Optional

from models.records import Reading


class ReadingStore:
    """Append-only reading history, capped across all boats.

    Readings are kept in global arrival order; when the cap is exceeded the
    oldest readings are evicted first, whichever boat they belong to.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._order: Deque[Reading] = deque()
        self._by_boat: Dict[str, Deque[Reading]] = {}
        self._lock = Lock()

    def append(self, reading: Reading) -> int:
        """Store ``reading`` and return how many old readings were evicted."""
        with self._lock:
            self._push(reading)
            return self._evict()

    def extend(self, readings: Iterable[Reading]) -> int:
        with self._lock:
            for reading in readings:
                self._push(reading)
            return self._evict()

    def latest(self, boat_id: str) -> Optional[Reading]:
        with self._lock:
            history = self._by_boat.get(boat_id)
            if not history:
                return None
            return history[-1]

    def history(self, boat_id: str, limit: Optional[int] = None) -> List[Reading]:
        with self._lock:
            history = self._by_boat.get(boat_id)
            if not history:
                return []
            items = list(history)
        if limit is not None:
            return items[-limit:] if limit > 0 else []
        return items

    def snapshot(self) -> List[Reading]:
        with self._lock:
            return list(self._order)

    def boat_ids(self) -> List[str]:
        with self._lock:
            return [boat_id for boat_id, history in self._by_boat.items() if history]

    def clear(self) -> None:
        with self._lock:
            self._order.clear()
            self._by_boat.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    def _push(self, reading: Reading) -> None:
        self._order.append(reading)
        self._by_boat.setdefault(reading.boat_id, deque()).append(reading)

    def _evict(self) -> int:
        evicted = 0
        while len(self._order) > self.capacity:
            oldest = self._order.popleft()
            # The globally oldest reading is also the oldest of its own boat.
            self._by_boat[oldest.boat_id].popleft()
            evicted += 1
        return evicted
