"""
Run Lock

File-based lock that keeps overlapping relay invocations (for example two
cron schedules firing together) from running the sync passes and the
outbox at the same time. Only one owner holds the lock; a lock older than
the timeout is treated as abandoned and taken over.
"""

import json
import os
import socket
import time
from contextlib import contextmanager
from typing import Callable, Dict, Optional

from notion_relay.constants import RUN_LOCK_FILE, RUN_LOCK_TIMEOUT
from notion_relay.core.exceptions import RunLockedError
from notion_relay.logger import logger


def default_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class RunLock:
    """Exclusive lock backed by a lock file created with O_CREAT | O_EXCL."""

    def __init__(self, state_dir: str, owner: str = None, lock_timeout: float = RUN_LOCK_TIMEOUT,
                 clock: Callable[[], float] = time.time):
        """Initialize the run lock.

        Args:
            state_dir: Directory holding the lock file
            owner: Identifier written into the lock file (default host:pid)
            lock_timeout: Seconds after which a held lock counts as stale.
                          0 disables takeover.
            clock: Time source (injectable for tests)
        """
        self.path = os.path.join(state_dir, RUN_LOCK_FILE)
        self.owner = owner or default_owner()
        self._lock_timeout = lock_timeout
        self._clock = clock

    def acquire(self) -> bool:
        """Acquire the lock.

        Returns:
            True if the lock is now held by this owner, False if another
            owner holds a lock that has not expired.
        """
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        for _ in range(2):
            if self._create():
                return True

            existing = self.read()
            if existing is None:
                # vanished or unreadable between create and read; try once more
                self._remove()
                continue
            if existing.get("owner") == self.owner:
                self._write(existing)
                return True
            if not self._is_stale(existing):
                return False

            logger.warning(f"Taking over stale run lock held by {existing.get('owner')}")
            self._remove()
        return False

    def release(self) -> bool:
        """Release the lock.

        Returns:
            True if released (or already free), False if held by another owner.
        """
        existing = self.read()
        if existing is None:
            return True
        if existing.get("owner") != self.owner:
            return False
        self._remove()
        return True

    def get_holder(self) -> Optional[str]:
        """Owner of a live lock, or None when the lock is free or stale."""
        existing = self.read()
        if existing is None or self._is_stale(existing):
            return None
        return existing.get("owner")

    @contextmanager
    def held(self):
        """Hold the lock for the duration of a with-block.

        Raises:
            RunLockedError: If another owner holds the lock
        """
        if not self.acquire():
            holder = self.get_holder()
            raise RunLockedError(f"Another relay run is in progress ({holder})", holder=holder)
        try:
            yield self
        finally:
            self.release()

    def read(self) -> Optional[Dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def _is_stale(self, info: Dict) -> bool:
        if self._lock_timeout <= 0:
            return False
        acquired_at = info.get("acquired_at")
        if not isinstance(acquired_at, (int, float)):
            return True
        return self._clock() - acquired_at > self._lock_timeout

    def _create(self) -> bool:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump({"owner": self.owner, "acquired_at": self._clock()}, f)
        return True

    def _write(self, info: Dict):
        info = dict(info, acquired_at=self._clock())
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(info, f)

    def _remove(self):
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
