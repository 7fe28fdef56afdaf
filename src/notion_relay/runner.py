"""
Relay Runner

Orchestrates one invocation: sync passes for each requested direction, then
outbox delivery. Directions are isolated from each other: a query fault
aborts only the pass it happened in.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from notion_relay.config import RelayConfig
from notion_relay.core.exceptions import NotionQueryError
from notion_relay.core.run_lock import RunLock
from notion_relay.delivery import (
    DeliveryArtifact,
    DeliveryPipeline,
    DeliveryResult,
    DeliveryState,
    OutboxDispatcher,
)
from notion_relay.logger import logger
from notion_relay.notion_client import NotionClient
from notion_relay.sync import SyncDirection, SyncEngine, SyncPassResult


@dataclass
class RunSummary:
    sync_results: List[SyncPassResult] = field(default_factory=list)
    deliveries: List[DeliveryResult] = field(default_factory=list)
    outbox: Optional[Dict[str, int]] = None

    @property
    def ok(self) -> bool:
        """False when a pass aborted or any delivery failed."""
        if any(r.aborted for r in self.sync_results):
            return False
        if any(not d.success for d in self.deliveries):
            return False
        return not (self.outbox and self.outbox.get("failed"))


class RelayRunner:
    """Runs sync passes and deliveries for one command invocation."""

    def __init__(self, config: RelayConfig, client=None, engine: SyncEngine = None,
                 pipeline: DeliveryPipeline = None, use_lock: bool = True):
        """
        Args:
            config: Loaded configuration
            client: Notion client (built from config on first sync when omitted)
            engine: Sync engine (built from config and client when omitted)
            pipeline: Delivery pipeline (built from config on first delivery when omitted)
            use_lock: Hold the run lock in state_dir while working
        """
        self.config = config
        self._client = client
        self._engine = engine
        self._pipeline = pipeline
        self.use_lock = use_lock

    @property
    def engine(self) -> SyncEngine:
        if self._engine is None:
            if self._client is None:
                self._client = NotionClient.from_config(self.config)
            self._engine = SyncEngine.from_config(self._client, self.config)
        return self._engine

    @property
    def pipeline(self) -> DeliveryPipeline:
        if self._pipeline is None:
            self._pipeline = DeliveryPipeline.from_config(self.config)
        return self._pipeline

    @contextmanager
    def locked(self):
        """Hold the run lock (no-op when locking is disabled).

        Raises:
            RunLockedError: If another run holds the lock
        """
        if not self.use_lock:
            yield
            return
        with RunLock(self.config.state_dir).held():
            yield

    # =========================================================================
    # Steps
    # =========================================================================

    def sync(self, directions: Iterable[SyncDirection] = (SyncDirection.FORWARD, SyncDirection.REVERSE)
             ) -> List[SyncPassResult]:
        """Run a sync pass per direction; a failed query aborts only its own pass."""
        engine = self.engine
        results = []
        for direction in directions:
            direction = SyncDirection(direction)
            try:
                result = engine.run_pass(direction)
            except NotionQueryError as e:
                logger.error(f"Sync {direction.value} aborted: {e}")
                result = SyncPassResult(direction)
                result.aborted = True
                result.error = str(e)
            results.append(result)
        return results

    def deliver_files(self, paths: Iterable[str], text: str = None) -> List[DeliveryResult]:
        """Deliver explicit files; unreadable files are reported as failures."""
        pipeline = self.pipeline
        results = []
        for path in paths:
            try:
                artifact = DeliveryArtifact.from_file(path)
            except OSError as e:
                logger.error(f"Cannot read {path}: {e}")
                results.append(DeliveryResult(name=path, digest="", state=DeliveryState.FAILED, error=str(e)))
                continue
            results.append(pipeline.deliver(artifact, text=text))
        return results

    def deliver_outbox(self, folder: str = None, delete_after_send: bool = None) -> Dict[str, int]:
        dispatcher = OutboxDispatcher.from_config(self.config, pipeline=self.pipeline, folder=folder,
                                                  delete_after_send=delete_after_send)
        return dispatcher.dispatch()

    def run(self) -> RunSummary:
        """Sync both directions, then dispatch the outbox, under the run lock.

        Raises:
            ConfigError: If sync or delivery settings are incomplete
            RunLockedError: If another run holds the lock
        """
        self.config.require_sync()
        self.config.require_delivery()

        summary = RunSummary()
        with self.locked():
            summary.sync_results = self.sync()
            summary.outbox = self.deliver_outbox()

        logger.header("Run complete", icon="🏁")
        for result in summary.sync_results:
            logger.info(str(result))
        logger.info(f"outbox: {summary.outbox}")
        return summary
