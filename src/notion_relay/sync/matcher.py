"""
Record Matcher

Finds a record's counterpart in the opposite store by exact business-key
equality.
"""

from typing import List

from notion_relay.logger import logger
from notion_relay.notion.schema import StoreRecord, StoreRef, decode_record, equals_filter


class RecordMatcher:
    """Looks up counterparts through an equality filter on the store's key property."""

    def __init__(self, client):
        """
        Args:
            client: Object with query_database(database_id, filter) (a NotionClient)
        """
        self.client = client

    def find_counterparts(self, store: StoreRef, key_value: str) -> List[StoreRecord]:
        """Query `store` for records whose key equals `key_value`.

        Returns:
            Matches in the store's native order (no sort is imposed). An
            empty list means there is no counterpart.

        Raises:
            NotionQueryError: If the lookup query fails
        """
        pages = self.client.query_database(store.database_id, equals_filter(store.schema.key, key_value))
        matches = [decode_record(page, store.schema) for page in pages]
        if len(matches) > 1:
            logger.warning(f"{store.label}: {len(matches)} records share key '{key_value}', "
                           f"using the first ({matches[0].id})")
        return matches
