"""Thread-safe in-memory registry of performance test records."""
from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .models import PerfTestConfig, PerfTestRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class PerfTestNotFoundError(KeyError):
    """Requested test ID does not exist."""

    def __init__(self, test_id: str) -> None:
        super().__init__(test_id)
        self.test_id = test_id

    def __str__(self) -> str:
        return f"Test not found: {self.test_id}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PerfTestRegistry:
    """Keyed store owning the authoritative copy of every test record.

    Records are immutable values.  All access goes through one lock, and
    ``update`` is the only way to change a stored record, so concurrent
    readers never see a partially applied change and no update is lost.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._records: Dict[str, PerfTestRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock or utc_now

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, test_id: object) -> bool:
        with self._lock:
            return test_id in self._records

    def now(self) -> datetime:
        return self._clock()

    # ── CRUD ─────────────────────────────────────────────────────────

    def create(self, config: PerfTestConfig) -> PerfTestRecord:
        """Store a new PENDING record for *config* and return it."""
        with self._lock:
            test_id = str(uuid.uuid4())
            while test_id in self._records:
                test_id = str(uuid.uuid4())
            rec = PerfTestRecord(
                id=test_id,
                name=config.name,
                start_time=self._clock(),
                duration_seconds=config.duration_seconds,
                load_level=config.load_level,
                description=config.description,
            )
            self._records[test_id] = rec
        logger.debug("Registered test %s (%s)", test_id, config.name)
        return rec

    def get(self, test_id: str) -> PerfTestRecord:
        with self._lock:
            rec = self._records.get(test_id)
        if rec is None:
            raise PerfTestNotFoundError(test_id)
        return rec

    def list(self) -> List[PerfTestRecord]:
        """Snapshot of all records in creation order."""
        with self._lock:
            return list(self._records.values())

    def delete(self, test_id: str) -> None:
        with self._lock:
            if self._records.pop(test_id, None) is None:
                raise PerfTestNotFoundError(test_id)
        logger.debug("Removed test %s", test_id)

    def update(
        self,
        test_id: str,
        mutator: Callable[[PerfTestRecord], PerfTestRecord],
    ) -> PerfTestRecord:
        """Atomically replace a record with ``mutator(current)``.

        The mutator runs while the registry lock is held and must not call
        back into the registry.  If it raises, the stored record is left
        untouched and the exception propagates.

        Raises
        ------
        PerfTestNotFoundError
            If *test_id* is not (or no longer) registered.
        """
        with self._lock:
            current = self._records.get(test_id)
            if current is None:
                raise PerfTestNotFoundError(test_id)
            nxt = mutator(current)
            if nxt.id != current.id:
                raise ValueError(f"Mutator changed record id {current.id!r} -> {nxt.id!r}")
            nxt = nxt.model_copy(update={"revision": current.revision + 1})
            self._records[test_id] = nxt
            return nxt
