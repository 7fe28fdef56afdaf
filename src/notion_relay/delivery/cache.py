"""
Sent-Record Cache

Remembers which artifact digests were delivered recently so a re-run does
not post the same report twice. Entries expire lazily: an entry older than
the TTL is dropped when the table is read, there is no background sweep.

The table is persisted as one JSON string. Small tables go to the volatile
store (with its own, shorter expiry); tables at or above the size threshold
go to the durable store. Any storage error degrades to an empty cache: dedup
is best-effort and never blocks delivery.
"""

import json
import time
from datetime import datetime
from typing import Callable, Dict, Optional

from notion_relay.constants import (
    SENT_CACHE_KEY,
    SENT_CACHE_SIZE_THRESHOLD,
    SENT_CACHE_TTL_HOURS,
    VOLATILE_CACHE_EXPIRY,
)
from notion_relay.delivery.stores import DurableFileStore, VolatileFileStore
from notion_relay.logger import logger


def _is_entry(entry) -> bool:
    if not isinstance(entry, dict):
        return False
    sent_at = entry.get("sent_at")
    return isinstance(sent_at, (int, float)) and not isinstance(sent_at, bool)


class SentRecordCache:
    """Digest -> {"name", "sent_at"} table with TTL and two storage tiers."""

    def __init__(
        self,
        volatile: VolatileFileStore,
        durable: DurableFileStore,
        ttl_seconds: float = SENT_CACHE_TTL_HOURS * 3600,
        size_threshold: int = SENT_CACHE_SIZE_THRESHOLD,
        volatile_expiry: float = VOLATILE_CACHE_EXPIRY,
        key: str = SENT_CACHE_KEY,
        clock: Callable[[], float] = time.time,
    ):
        self.volatile = volatile
        self.durable = durable
        self.ttl_seconds = ttl_seconds
        self.size_threshold = size_threshold
        self.volatile_expiry = volatile_expiry
        self.key = key
        self._clock = clock
        self._entries: Optional[Dict[str, Dict]] = None

    @classmethod
    def from_config(cls, config) -> "SentRecordCache":
        return cls(
            VolatileFileStore(),
            DurableFileStore(config.state_dir),
            ttl_seconds=config.cache_ttl_hours * 3600,
        )

    # =========================================================================
    # Loading / persisting
    # =========================================================================

    def load(self) -> Dict[str, Dict]:
        """Read the table from the volatile tier, falling back to the durable tier.

        Returns an empty table on any read or parse error.
        """
        raw = None
        try:
            raw = self.volatile.get(self.key)
            if not raw:
                raw = self.durable.get(self.key)
            entries = json.loads(raw) if raw else {}
            if not isinstance(entries, dict):
                raise ValueError("sent cache is not a JSON object")
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load sent cache, starting empty: {e}")
            entries = {}

        valid = {digest: entry for digest, entry in entries.items() if _is_entry(entry)}
        if len(valid) != len(entries):
            logger.warning(f"Dropped {len(entries) - len(valid)} malformed sent cache entr(ies)")
        self._entries = valid
        return valid

    def persist(self) -> bool:
        """Write the table to the tier its serialized size selects.

        Returns:
            True if written; False on storage error (logged, not raised)
        """
        data = json.dumps(self._table(), ensure_ascii=False)
        try:
            if len(data) < self.size_threshold:
                self.volatile.put(self.key, data, self.volatile_expiry)
            else:
                logger.debug(f"Sent cache is {len(data)} chars, using durable store")
                self.durable.put(self.key, data)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to save sent cache: {e}")
            return False
        return True

    def _table(self) -> Dict[str, Dict]:
        if self._entries is None:
            self.load()
        return self._entries

    def _evict_expired(self):
        now = self._clock()
        table = self._table()
        expired = [digest for digest, entry in table.items()
                   if now - entry.get("sent_at", 0) > self.ttl_seconds]
        for digest in expired:
            del table[digest]

    # =========================================================================
    # Operations
    # =========================================================================

    def lookup(self, digest: str) -> Optional[Dict]:
        """Return the entry for `digest`, or None if absent or expired."""
        self._evict_expired()
        entry = self._table().get(digest)
        if entry:
            sent_at = datetime.fromtimestamp(entry.get("sent_at", 0)).strftime("%Y/%m/%d %H:%M:%S")
            logger.info(f"Already sent: {entry.get('name')} (previous send {sent_at})", icon="⏭️ ")
        return entry

    def mark_sent(self, digest: str, name: str):
        """Insert or overwrite the entry for `digest` with the current time."""
        self._table()[digest] = {"name": name, "sent_at": self._clock()}

    def entries(self) -> Dict[str, Dict]:
        """Live (non-expired) entries."""
        self._evict_expired()
        return dict(self._table())

    def clear(self) -> bool:
        """Drop every entry from both tiers."""
        self._entries = {}
        try:
            self.volatile.delete(self.key)
            self.durable.delete(self.key)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to clear sent cache: {e}")
            return False
        return True
