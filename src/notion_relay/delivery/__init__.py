"""
Delivery Module Package

Idempotent report delivery to the chat endpoint.

Structure:
    - stores.py: volatile / durable key-value stores
    - cache.py: SentRecordCache - TTL'd digest table for dedup
    - chat_client.py: ChatClient - multipart send request
    - pipeline.py: DeliveryPipeline - dedup, send, retry with backoff
    - outbox.py: OutboxDispatcher - deliver every file of a folder

Usage:
    from notion_relay.delivery import DeliveryPipeline, DeliveryArtifact
"""

from notion_relay.delivery.cache import SentRecordCache
from notion_relay.delivery.chat_client import ChatClient
from notion_relay.delivery.outbox import OutboxDispatcher
from notion_relay.delivery.pipeline import (
    DeliveryArtifact,
    DeliveryPipeline,
    DeliveryResult,
    DeliveryState,
)
from notion_relay.delivery.stores import DurableFileStore, VolatileFileStore

__all__ = [
    'SentRecordCache', 'VolatileFileStore', 'DurableFileStore',
    'ChatClient', 'OutboxDispatcher',
    'DeliveryArtifact', 'DeliveryPipeline', 'DeliveryResult', 'DeliveryState',
]
