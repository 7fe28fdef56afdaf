"""
Core Module Package

Core functionality used across the application:
- fingerprint: artifact digests and idempotency keys
- retry: exponential backoff for HTTP calls
- run_lock: run-level mutual exclusion
- exceptions: error taxonomy

Usage:
    from notion_relay.core import digest, idempotency_key
    from notion_relay.core.retry import api_request_with_retry
"""

from notion_relay.core.fingerprint import digest, idempotency_key
from notion_relay.core.exceptions import (
    ConfigError,
    NotionQueryError,
    RelayError,
    RunLockedError,
    SchemaError,
)
from notion_relay.core.retry import api_request_with_retry, backoff_delay
from notion_relay.core.run_lock import RunLock

__all__ = [
    'digest', 'idempotency_key',
    'api_request_with_retry', 'backoff_delay',
    'RunLock',
    'RelayError', 'ConfigError', 'NotionQueryError', 'SchemaError', 'RunLockedError',
]
