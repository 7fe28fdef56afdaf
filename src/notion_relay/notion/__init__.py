"""
Notion API Client Package

Package Structure:
    - base.py: Core client (headers, rate limiting, retry)
    - databases.py: Database query and page update operations
    - schema.py: Typed store schemas and record decoding

Usage:
    from notion_relay.notion import NotionClient
"""

from notion_relay.notion.base import NotionClientBase
from notion_relay.notion.databases import DatabaseOperationsMixin


def __getattr__(name):
    """Lazy import NotionClient to avoid circular import."""
    if name == 'NotionClient':
        from notion_relay.notion_client import NotionClient
        return NotionClient
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'NotionClient',
    'NotionClientBase',
    'DatabaseOperationsMixin',
]
