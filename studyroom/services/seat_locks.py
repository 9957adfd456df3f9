import threading
from contextlib import contextmanager
from typing import Any, Dict, Hashable, Iterator


class SeatLockRegistry:
    """
    One re-entrant mutex per seat, created on first use.

    Work on different seats never contends; the registry lock only guards the
    dictionary itself and is released before the per-seat lock is taken. One
    registry must be shared by every engine serving the same process.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, Any] = {}

    def _lock_for(self, seat_id: Hashable):
        with self._guard:
            lock = self._locks.get(seat_id)
            if lock is None:
                lock = self._locks[seat_id] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, seat_id: Hashable) -> Iterator[None]:
        lock = self._lock_for(seat_id)
        with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
