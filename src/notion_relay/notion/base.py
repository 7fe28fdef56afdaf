"""
Base Notion Client Module

Contains core client functionality:
- Authentication headers
- Rate limiting
- Request dispatch with retry
"""

import threading
import time
from typing import Any, Dict, Optional

import requests

from notion_relay.constants import (
    API_MAX_RETRIES,
    API_RATE_LIMIT_INTERVAL,
    API_RETRY_BASE_DELAY,
    NOTION_API_BASE_URL,
    NOTION_VERSION,
)
from notion_relay.core.retry import api_request_with_retry


class NotionClientBase:
    """Base class for the Notion API client with authentication and rate limiting."""

    _rate_limit_interval = API_RATE_LIMIT_INTERVAL
    _last_request_time = 0.0
    _rate_limit_lock = threading.Lock()

    def __init__(self, token: str, notion_version: str = NOTION_VERSION,
                 base_url: str = NOTION_API_BASE_URL, session: Optional[requests.Session] = None,
                 max_retries: int = API_MAX_RETRIES, retry_base_delay: float = API_RETRY_BASE_DELAY):
        """Initialize the Notion client.

        Args:
            token: Integration token
            notion_version: Value of the Notion-Version header
            base_url: API root, without trailing slash
            session: Optional pre-configured requests session
            max_retries: Retries on 429/5xx/transport errors
            retry_base_delay: Base delay for exponential backoff
        """
        self.token = token
        self.notion_version = notion_version
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    def _rate_limit(self):
        """Ensure minimum interval between API requests."""
        with NotionClientBase._rate_limit_lock:
            now = time.time()
            elapsed = now - NotionClientBase._last_request_time
            if elapsed < self._rate_limit_interval:
                time.sleep(self._rate_limit_interval - elapsed)
            NotionClientBase._last_request_time = time.time()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Notion-Version": self.notion_version,
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, payload: Dict[str, Any] = None) -> requests.Response:
        """Send a JSON request, retrying rate limits and server errors.

        Raises:
            requests.exceptions.RequestException: On transport failure after retries
        """
        self._rate_limit()
        return api_request_with_retry(
            self.session, method, self._url(path),
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            headers=self._headers(),
            json=payload,
        )

    @staticmethod
    def _parse_body(response: requests.Response) -> Optional[Dict[str, Any]]:
        """Return the JSON body, or None if it is not a JSON object."""
        try:
            body = response.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None

    @staticmethod
    def _is_error_body(body: Optional[Dict[str, Any]]) -> bool:
        return body is None or body.get("object") == "error"
