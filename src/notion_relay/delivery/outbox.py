"""
Outbox Dispatcher

Delivers every report file waiting in the outbox folder, one at a time and
in name order. Report generation writes into the folder; this module only
reads, sends and (optionally) moves sent files into `<outbox>/.trash/`.
"""

import os
import time
from typing import Callable, Dict, List

from notion_relay.constants import OUTBOX_EXTENSIONS, OUTBOX_TRASH_DIR
from notion_relay.delivery.pipeline import DeliveryArtifact, DeliveryPipeline, DeliveryState
from notion_relay.logger import logger


class OutboxDispatcher:
    """Sends the report files in one folder through a DeliveryPipeline."""

    def __init__(self, pipeline: DeliveryPipeline, folder: str, delete_after_send: bool = False,
                 send_interval: float = 0.0, sleep: Callable[[float], None] = time.sleep):
        self.pipeline = pipeline
        self.folder = folder
        self.delete_after_send = delete_after_send
        self.send_interval = send_interval
        self._sleep = sleep

    @classmethod
    def from_config(cls, config, pipeline: DeliveryPipeline = None, folder: str = None,
                    delete_after_send: bool = None) -> "OutboxDispatcher":
        return cls(
            pipeline or DeliveryPipeline.from_config(config),
            folder or config.outbox_dir,
            delete_after_send=config.delete_after_send if delete_after_send is None else delete_after_send,
            send_interval=config.send_interval,
        )

    def list_files(self) -> List[str]:
        """Report files in the outbox, sorted by name."""
        names = sorted(
            name for name in os.listdir(self.folder)
            if os.path.splitext(name)[1].lower() in OUTBOX_EXTENSIONS
            and os.path.isfile(os.path.join(self.folder, name))
        )
        return [os.path.join(self.folder, name) for name in names]

    def dispatch(self) -> Dict[str, int]:
        """Send all pending report files.

        Returns:
            Counts: sent, skipped (already sent), failed, trashed, total
        """
        stats = {"sent": 0, "skipped": 0, "failed": 0, "trashed": 0, "total": 0}

        if not os.path.isdir(self.folder):
            logger.warning(f"Outbox folder not found: {self.folder}")
            return stats

        logger.header(f"Outbox {self.folder}", icon="📬")
        logger.info(f"Delete after send: {'on' if self.delete_after_send else 'off'}")

        files = self.list_files()
        stats["total"] = len(files)
        if not files:
            logger.info("No report files to send")
            return stats

        for i, path in enumerate(files):
            name = os.path.basename(path)
            logger.info(f"[{i + 1}/{len(files)}] {name}")

            try:
                artifact = DeliveryArtifact.from_file(path)
            except OSError as e:
                logger.error(f"Cannot read {name}: {e}")
                stats["failed"] += 1
                continue

            result = self.pipeline.deliver(artifact)
            if not result.success:
                stats["failed"] += 1
            else:
                stats["skipped" if result.state is DeliveryState.SKIPPED else "sent"] += 1
                if self.delete_after_send and self._trash(path):
                    stats["trashed"] += 1

            # only sleep between actual sends
            if result.state is not DeliveryState.SKIPPED and i < len(files) - 1 and self.send_interval > 0:
                self._sleep(self.send_interval)

        logger.summary_table("Outbox", {
            "sent": stats["sent"],
            "skipped": stats["skipped"],
            "failed": stats["failed"],
            "trashed": stats["trashed"],
        })
        return stats

    def _trash(self, path: str) -> bool:
        trash_dir = os.path.join(self.folder, OUTBOX_TRASH_DIR)
        target = os.path.join(trash_dir, os.path.basename(path))
        if os.path.exists(target):
            stem, ext = os.path.splitext(os.path.basename(path))
            target = os.path.join(trash_dir, f"{stem}.{int(time.time())}{ext}")
        try:
            os.makedirs(trash_dir, exist_ok=True)
            os.replace(path, target)
        except OSError as e:
            logger.error(f"Failed to move {os.path.basename(path)} to trash: {e}")
            return False
        logger.debug(f"Moved {os.path.basename(path)} to {OUTBOX_TRASH_DIR}/")
        return True
