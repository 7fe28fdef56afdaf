"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from typing import Any, Dict, List

import pytest
import requests

# Add src/ to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from notion_relay.config import RelayConfig  # noqa: E402
from notion_relay.core.exceptions import NotionQueryError  # noqa: E402
from notion_relay.notion.schema import (  # noqa: E402
    DEFAULT_REQUEST_SCHEMA,
    DEFAULT_STOCK_SCHEMA,
    StoreRef,
)

REQUEST_DB = "db-requests"
STOCK_DB = "db-stock"


# =============================================================================
# Notion property builders
# =============================================================================

def text_prop(kind: str, text: str) -> Dict[str, Any]:
    segments = [{"type": "text", "text": {"content": text}, "plain_text": text}] if text else []
    return {"type": kind, kind: segments}


def number_prop(value) -> Dict[str, Any]:
    return {"type": "number", "number": value}


def date_prop(start, end=None) -> Dict[str, Any]:
    value = {"start": start, "end": end, "time_zone": None} if start else None
    return {"type": "date", "date": value}


def checkbox_prop(value: bool) -> Dict[str, Any]:
    return {"type": "checkbox", "checkbox": value}


# =============================================================================
# In-memory Notion
# =============================================================================

class FakeNotion:
    """In-memory stand-in for NotionClient.

    Evaluates equality filters against stored pages and applies PATCHes the
    way the API does (only the given properties change).
    """

    def __init__(self):
        self.databases: Dict[str, List[Dict[str, Any]]] = {}
        self.query_calls: List[tuple] = []
        self.update_calls: List[tuple] = []
        self.fail_updates = set()
        self.query_errors: Dict[str, NotionQueryError] = {}

    def add_page(self, database_id: str, page_id: str, **properties) -> Dict[str, Any]:
        page = {"object": "page", "id": page_id, "properties": dict(properties)}
        self.databases.setdefault(database_id, []).append(page)
        return page

    def add_request(self, page_id, key, flag=False, quantity=None, start=None):
        return self.add_page(REQUEST_DB, page_id, **{
            "Part Number": text_prop("title", key),
            "Sync Flag": checkbox_prop(flag),
            "Quantity": number_prop(quantity),
            "Request Date": date_prop(start),
        })

    def add_stock(self, page_id, key, flag=False, quantity=None, start=None):
        return self.add_page(STOCK_DB, page_id, **{
            "Part Number": text_prop("rich_text", key),
            "Sync Flag": checkbox_prop(flag),
            "Quantity": number_prop(quantity),
            "Request Date": date_prop(start),
        })

    def page(self, page_id: str) -> Dict[str, Any]:
        for pages in self.databases.values():
            for page in pages:
                if page["id"] == page_id:
                    return page
        raise KeyError(page_id)

    def prop(self, page_id: str, name: str) -> Any:
        prop = self.page(page_id)["properties"].get(name) or {}
        return prop.get(prop.get("type"))

    @staticmethod
    def _matches(page, filter) -> bool:
        if not filter:
            return True
        name = filter["property"]
        kind, condition = next((k, v) for k, v in filter.items() if k != "property")
        prop = page["properties"].get(name)
        if kind in ("title", "rich_text"):
            value = "".join(s.get("plain_text", "") for s in (prop or {}).get(kind) or [])
        elif kind == "checkbox":
            value = bool((prop or {}).get("checkbox"))
        else:
            value = (prop or {}).get(kind)
        return value == condition["equals"]

    def query_database(self, database_id, filter=None, page_size=100):
        self.query_calls.append((database_id, filter))
        if database_id in self.query_errors:
            raise self.query_errors[database_id]
        return [p for p in self.databases.get(database_id, []) if self._matches(p, filter)]

    def update_page(self, page_id, properties) -> bool:
        self.update_calls.append((page_id, properties))
        if page_id in self.fail_updates:
            return False
        page = self.page(page_id)
        for name, value in properties.items():
            kind = next(iter(value))
            page["properties"][name] = {"type": kind, kind: value[kind]}
        return True


# =============================================================================
# Chat endpoint fake
# =============================================================================

class FakeResponse:
    def __init__(self, status_code: int, text: str = ""):
        self.status_code = status_code
        self.text = text


class FakeChatClient:
    """Records sends and replays scripted outcomes (status codes or exceptions).

    The last outcome repeats once the script runs out.
    """

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [200])
        self.calls: List[Dict[str, Any]] = []

    def send(self, text, filename, content, idempotency_key):
        self.calls.append({"text": text, "filename": filename, "content": content,
                           "idempotency_key": idempotency_key})
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def notion() -> FakeNotion:
    return FakeNotion()


@pytest.fixture
def request_store() -> StoreRef:
    return StoreRef("requests", REQUEST_DB, DEFAULT_REQUEST_SCHEMA)


@pytest.fixture
def stock_store() -> StoreRef:
    return StoreRef("stock", STOCK_DB, DEFAULT_STOCK_SCHEMA)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state_dir(tmp_path) -> str:
    path = tmp_path / "state"
    path.mkdir()
    return str(path)


@pytest.fixture
def chat_factory():
    return FakeChatClient


@pytest.fixture
def connection_error():
    return requests.exceptions.ConnectionError("connection reset")


@pytest.fixture
def relay_config(tmp_path, state_dir) -> RelayConfig:
    outbox = tmp_path / "outbox"
    outbox.mkdir()
    return RelayConfig(
        notion_token="secret_test",
        request_db_id=REQUEST_DB,
        stock_db_id=STOCK_DB,
        chat_base_url="https://chat.example.com/",
        chat_api_key="chat-key",
        chat_channel_id="42",
        outbox_dir=str(outbox),
        state_dir=state_dir,
        send_interval=0.0,
    )
