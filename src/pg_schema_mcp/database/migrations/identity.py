"""Migration identifiers and checksums."""

import hashlib
import secrets
import threading
import time


def compute_checksum(sql: str) -> str:
    """SHA-256 hex digest of the exact SQL text."""
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


class MigrationIdGenerator:
    """Issues unique, time-ordered migration ids.

    An id is a 13-digit millisecond epoch, an underscore and 8 random hex
    characters. Timestamps issued by one generator strictly increase, so
    ids compare lexicographically in creation order.
    """

    def __init__(self, clock=None) -> None:
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._last_ms = 0
        self._lock = threading.Lock()

    def next_timestamp(self) -> int:
        with self._lock:
            now = self._clock()
            if now <= self._last_ms:
                now = self._last_ms + 1
            self._last_ms = now
            return now

    def new_id(self, timestamp: int | None = None) -> str:
        if timestamp is None:
            timestamp = self.next_timestamp()
        return f"{timestamp:013d}_{secrets.token_hex(4)}"
