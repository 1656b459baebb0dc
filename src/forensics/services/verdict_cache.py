from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from forensics.core.models import ThreatVerdict


class VerdictCache:
    """
    Address -> (verdict, expiry) store shared by concurrent lookups.

    Created once per aggregator and kept for the life of the process.
    Expiry is checked lazily on read. When `max_size` is set, the entries
    written longest ago are evicted first. Writes for the same address are
    last-write-wins; the lock only keeps the ordered dict consistent.
    """

    def __init__(
        self,
        ttl_sec: float = 3600,
        max_size: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = float(ttl_sec)
        self._max_size = int(max_size)
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[ThreatVerdict, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, address: str) -> Optional[ThreatVerdict]:
        key = address.lower()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            verdict, expiry = entry
            if expiry <= self._clock():
                del self._entries[key]
                return None
            return verdict

    def put(self, address: str, verdict: ThreatVerdict) -> None:
        key = address.lower()
        with self._lock:
            self._entries[key] = (verdict, self._clock() + self._ttl)
            self._entries.move_to_end(key)
            if self._max_size > 0:
                while len(self._entries) > self._max_size:
                    self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, address: str) -> bool:
        return self.get(address) is not None
