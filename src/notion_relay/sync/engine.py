"""
Synchronization Engine

Runs one directional, flag-triggered sync pass between the request store
(store A) and the stock store (store B):

- Forward: flagged request records push quantity / request date onto the
  matching stock record.
- Reverse: flagged stock records clear quantity / request date on the
  matching request record.

A source flag is reset only after the counterpart write was acknowledged,
so a failed write leaves the record queued for the next pass. Writes are
partial PATCHes of fixed values, which makes re-applying them harmless.
"""

from enum import Enum
from typing import Any, Dict, Optional

from notion_relay.config import RelayConfig
from notion_relay.core.exceptions import NotionQueryError, SchemaError
from notion_relay.logger import logger
from notion_relay.notion.schema import StoreRecord, StoreRef, StoreSchema, encode_properties
from notion_relay.sync.matcher import RecordMatcher
from notion_relay.sync.work_queue import FlagWorkQueue, WorkItem


class SyncDirection(str, Enum):
    FORWARD = "forward"
    REVERSE = "reverse"


class SyncPassResult:
    """Outcome counts of one sync pass. Advisory only; nothing branches on them."""

    def __init__(self, direction: SyncDirection):
        self.direction = direction
        self.succeeded: int = 0
        self.failed: int = 0
        self.skipped: int = 0
        self.aborted: bool = False
        self.error: Optional[str] = None

    @property
    def total(self) -> int:
        return self.succeeded + self.failed + self.skipped

    def as_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "aborted": self.aborted,
            "error": self.error,
        }

    def __str__(self):
        if self.aborted:
            return f"{self.direction.value}: aborted ({self.error})"
        return (f"{self.direction.value}: succeeded={self.succeeded}, "
                f"failed={self.failed}, skipped={self.skipped}")


def forward_properties(source: StoreRecord, target: StoreSchema) -> Dict[str, Any]:
    """Partial PATCH for the forward direction: only non-null payload fields."""
    values = {}
    if source.quantity is not None:
        values[target.quantity] = source.quantity
    if source.request_date is not None:
        values[target.request_date] = source.request_date
    return encode_properties(values)


def clearing_properties(target: StoreSchema) -> Dict[str, Any]:
    """PATCH for the reverse direction: explicit nulls, not omissions."""
    return encode_properties({target.quantity: None, target.request_date: None})


class SyncEngine:
    """Propagates field values between the request and stock stores."""

    def __init__(self, client, request_store: StoreRef, stock_store: StoreRef,
                 matcher: RecordMatcher = None):
        """Initialize the sync engine.

        Args:
            client: Object with query_database/update_page (a NotionClient)
            request_store: Store A, triggers the forward direction
            stock_store: Store B, triggers the reverse direction
            matcher: Counterpart lookup (default: RecordMatcher over client)
        """
        self.client = client
        self.request_store = request_store
        self.stock_store = stock_store
        self.matcher = matcher or RecordMatcher(client)

    @classmethod
    def from_config(cls, client, config: RelayConfig) -> "SyncEngine":
        config.require_sync()
        return cls(
            client,
            request_store=StoreRef("requests", config.request_db_id, config.request_schema),
            stock_store=StoreRef("stock", config.stock_db_id, config.stock_schema),
        )

    # =========================================================================
    # Pass
    # =========================================================================

    def run_pass(self, direction: SyncDirection) -> SyncPassResult:
        """Run one sync pass in the given direction.

        Per-record problems (skips, failed lookups, failed writes) are
        counted and the pass continues.

        Raises:
            NotionQueryError: If the flagged-record query itself fails
        """
        direction = SyncDirection(direction)
        if direction is SyncDirection.FORWARD:
            source, target = self.request_store, self.stock_store
        else:
            source, target = self.stock_store, self.request_store

        logger.header(f"Sync {source.label} → {target.label}", icon="🔄")
        result = SyncPassResult(direction)
        queue = FlagWorkQueue(self.client, source)

        items = queue.pending()
        if not items:
            logger.info(f"{source.label}: no flagged records")
            return result

        logger.info(f"{source.label}: {len(items)} flagged record(s)")
        for item in items:
            outcome = self._process(queue, item, direction, target)
            if outcome is True:
                result.succeeded += 1
            elif outcome is False:
                result.failed += 1
            else:
                result.skipped += 1

        logger.summary_table(f"Sync {direction.value}", {
            "succeeded": result.succeeded,
            "failed": result.failed,
            "skipped": result.skipped,
        })
        return result

    def _process(self, queue: FlagWorkQueue, item: WorkItem, direction: SyncDirection,
                 target: StoreRef) -> Optional[bool]:
        """Process one work item.

        Returns:
            True on success, False on failure, None when skipped
        """
        record = item.record
        if item.error:
            return False

        if not record.key.strip():
            logger.info(f"Page {record.id}: empty key, skipped")
            return None

        if direction is SyncDirection.FORWARD:
            if record.quantity is None:
                logger.info(f"Page {record.id} ({record.key}): quantity is empty, syncing date only")
            if record.request_date is None:
                logger.info(f"Page {record.id} ({record.key}): request date is empty, skipped")
                return None

        queue.claim(item)
        try:
            matches = self.matcher.find_counterparts(target, record.key)
        except (NotionQueryError, SchemaError) as e:
            logger.error(f"{record.key}: counterpart lookup in {target.label} failed: {e}")
            queue.release(item)
            return False

        if not matches:
            logger.info(f"{record.key}: no counterpart in {target.label}, skipped")
            queue.release(item)
            return None

        counterpart = matches[0]
        if direction is SyncDirection.FORWARD:
            props = forward_properties(record, target.schema)
        else:
            props = clearing_properties(target.schema)

        if not self.client.update_page(counterpart.id, props):
            logger.error(f"{record.key}: update of {target.label} page {counterpart.id} failed, flag kept")
            queue.release(item)
            return False

        if not queue.complete(item):
            logger.error(f"{record.key}: {target.label} updated but flag reset failed")
            return False

        logger.success(f"{record.key}: synced to {target.label}")
        return True
