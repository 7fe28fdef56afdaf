"""
Flag Work Queue

Treats a store's sync flag as a durable work queue. Each flagged record is
a work item moving through PENDING -> IN_FLIGHT -> DONE. Only PENDING and
DONE are persisted (flag true / flag false); IN_FLIGHT lives in memory, so
a run that dies mid-item leaves the item PENDING for the next pass.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from notion_relay.core.exceptions import SchemaError
from notion_relay.logger import logger
from notion_relay.notion.schema import StoreRecord, StoreRef, decode_record, encode_property, equals_filter


class WorkState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    DONE = "done"


@dataclass
class WorkItem:
    record: StoreRecord
    state: WorkState = WorkState.PENDING
    # set when the page could not be decoded; such items are never claimed
    error: Optional[str] = None


class FlagWorkQueue:
    """Work items of one store, backed by its sync flag property."""

    def __init__(self, client, store: StoreRef):
        """
        Args:
            client: Object with query_database/update_page (a NotionClient)
            store: Store whose flag acts as the queue
        """
        self.client = client
        self.store = store

    def pending(self) -> List[WorkItem]:
        """Fetch all records whose flag is set.

        Pages that do not match the store schema come back as items with
        `error` set, so one malformed page does not hide the others.

        Raises:
            NotionQueryError: If the store cannot be queried
        """
        flag = self.store.schema.sync_flag
        pages = self.client.query_database(self.store.database_id, equals_filter(flag, True))

        items = []
        for page in pages:
            try:
                items.append(WorkItem(decode_record(page, self.store.schema)))
            except SchemaError as e:
                logger.error(f"{self.store.label}: page {page.get('id')} skipped: {e}")
                items.append(WorkItem(StoreRecord(id=page.get("id", ""), sync_flag=True, raw=page), error=str(e)))
        return items

    def claim(self, item: WorkItem) -> WorkItem:
        if item.state is not WorkState.PENDING:
            raise ValueError(f"Cannot claim work item {item.record.id} in state {item.state.value}")
        item.state = WorkState.IN_FLIGHT
        return item

    def complete(self, item: WorkItem) -> bool:
        """Commit an in-flight item by clearing its flag.

        Returns:
            True if the flag was cleared (DONE); False leaves the item PENDING
        """
        if item.state is not WorkState.IN_FLIGHT:
            raise ValueError(f"Cannot complete work item {item.record.id} in state {item.state.value}")

        flag = self.store.schema.sync_flag
        if self.client.update_page(item.record.id, {flag.name: encode_property(flag, False)}):
            item.state = WorkState.DONE
            item.record.sync_flag = False
            return True

        logger.error(f"{self.store.label}: failed to reset sync flag on {item.record.id}")
        item.state = WorkState.PENDING
        return False

    def release(self, item: WorkItem) -> WorkItem:
        """Return an item to PENDING without writing anything."""
        if item.state is WorkState.IN_FLIGHT:
            item.state = WorkState.PENDING
        return item
