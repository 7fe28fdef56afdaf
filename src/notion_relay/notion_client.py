"""
Notion Client Module

Composes the Notion API client from its operation mixins.
"""

from notion_relay.config import RelayConfig
from notion_relay.logger import logger
from notion_relay.notion.base import NotionClientBase
from notion_relay.notion.databases import DatabaseOperationsMixin


class NotionClient(DatabaseOperationsMixin, NotionClientBase):
    """Wrapper around the Notion public API (databases and pages)."""

    @classmethod
    def from_config(cls, config: RelayConfig) -> "NotionClient":
        """Build a client from a validated RelayConfig."""
        config.require_sync()
        logger.debug(f"Notion client initialized (version {config.notion_version})", icon="🔑")
        return cls(config.notion_token, notion_version=config.notion_version)
