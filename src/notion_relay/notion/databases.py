"""
Notion Database Operations Module

Contains methods for database and page manipulation:
- Query: filtered, paginated database query
- Page: partial property update (PATCH)
"""

from typing import Any, Dict, List

import requests

from notion_relay.constants import NOTION_QUERY_PAGE_SIZE
from notion_relay.core.exceptions import NotionQueryError
from notion_relay.logger import logger


class DatabaseOperationsMixin:
    """Mixin class providing database and page methods for NotionClient."""

    def query_database(self, database_id: str, filter: Dict[str, Any] = None,
                       page_size: int = NOTION_QUERY_PAGE_SIZE) -> List[Dict[str, Any]]:
        """Query a database, following pagination.

        Args:
            database_id: Database ID
            filter: Notion filter object, e.g. {"property": "Sync Flag", "checkbox": {"equals": True}}
            page_size: Results per request (max 100)

        Returns:
            Pages in the order the API returned them

        Raises:
            NotionQueryError: On transport failure, non-2xx status, malformed
                body or an error object
        """
        path = f"databases/{database_id}/query"
        payload: Dict[str, Any] = {"page_size": min(page_size, NOTION_QUERY_PAGE_SIZE)}
        if filter:
            payload["filter"] = filter

        results: List[Dict[str, Any]] = []
        while True:
            try:
                response = self._request("POST", path, payload)
            except requests.exceptions.RequestException as e:
                logger.error(f"Query of database {database_id} failed: {e}")
                raise NotionQueryError(f"Query of database {database_id} failed: {e}")

            body = self._parse_body(response)
            if not (200 <= response.status_code < 300) or self._is_error_body(body):
                message = body.get("message") if body else response.text[:500]
                logger.error(f"Query of database {database_id} returned {response.status_code}: {message}")
                raise NotionQueryError(f"Query of database {database_id} failed: {message}",
                                       status_code=response.status_code)

            results.extend(body.get("results") or [])

            if not body.get("has_more") or not body.get("next_cursor"):
                break
            payload["start_cursor"] = body["next_cursor"]

        logger.debug(f"Database {database_id}: {len(results)} page(s) matched")
        return results

    def update_page(self, page_id: str, properties: Dict[str, Any]) -> bool:
        """Patch a page's properties. Only the given properties change.

        Args:
            page_id: Page ID
            properties: Notion properties map

        Returns:
            True on a 2xx non-error response, False otherwise
        """
        try:
            response = self._request("PATCH", f"pages/{page_id}", {"properties": properties})
        except requests.exceptions.RequestException as e:
            logger.error(f"Update of page {page_id} failed: {e}")
            return False

        logger.debug(f"Update page {page_id}: {response.status_code}")
        if not (200 <= response.status_code < 300):
            logger.error(f"Update of page {page_id} returned status {response.status_code}")
            return False

        body = self._parse_body(response)
        if self._is_error_body(body):
            message = body.get("message") if body else "malformed response"
            logger.error(f"Update of page {page_id} failed: {message}")
            return False

        return True
