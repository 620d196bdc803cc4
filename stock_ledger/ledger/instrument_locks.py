"""Per-instrument in-process write serialization."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class InstrumentLockRegistry:
    """Hand out one re-entrant lock per instrument id.

    Writers on the same instrument serialize; different instruments never
    block each other. Locks are re-entrant so a mutation can recompute while
    still holding its instrument lock.
    """

    def __init__(self) -> None:
        self._registry_guard = threading.Lock()
        self._locks: dict[int, threading.RLock] = {}

    @contextmanager
    def ledger_lock_instrument(self, instrument_id: int) -> Iterator[None]:
        """Hold the lock of one instrument for the duration of the block.

        Args:
            instrument_id: Instrument identifier.

        Returns:
            Iterator[None]: Context manager body runs while the lock is held.

        Raises:
            ValueError: Raised when instrument_id is not an integer.
        """

        instrument_lock = self._ledger_lock_for(instrument_id)
        with instrument_lock:
            yield

    def ledger_lock_count(self) -> int:
        """Return the number of instruments that have been locked at least once."""

        with self._registry_guard:
            return len(self._locks)

    def _ledger_lock_for(self, instrument_id: int) -> threading.RLock:
        if isinstance(instrument_id, bool) or not isinstance(instrument_id, int):
            raise ValueError("instrument_id must be an integer")

        with self._registry_guard:
            instrument_lock = self._locks.get(instrument_id)
            if instrument_lock is None:
                instrument_lock = threading.RLock()
                self._locks[instrument_id] = instrument_lock
            return instrument_lock


__all__ = ["InstrumentLockRegistry"]
