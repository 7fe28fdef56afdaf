"""
Sync Module Package

Flag-triggered synchronization between the request and stock stores.

Structure:
    - matcher.py: RecordMatcher - counterpart lookup by business key
    - work_queue.py: FlagWorkQueue - sync flag as a durable work queue
    - engine.py: SyncEngine - one directional sync pass

Usage:
    from notion_relay.sync import SyncEngine, SyncDirection
"""

from notion_relay.sync.engine import SyncDirection, SyncEngine, SyncPassResult
from notion_relay.sync.matcher import RecordMatcher
from notion_relay.sync.work_queue import FlagWorkQueue, WorkItem, WorkState

__all__ = ['SyncEngine', 'SyncDirection', 'SyncPassResult', 'RecordMatcher',
           'FlagWorkQueue', 'WorkItem', 'WorkState']
