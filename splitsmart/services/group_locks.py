import logging
import threading
from contextlib import contextmanager
from typing import Dict, Optional

from splitsmart.core.config import settings
from splitsmart.core.exceptions import ConcurrencyError

logger = logging.getLogger(__name__)


class GroupLockRegistry:
    """Hands out one exclusive lock per group.

    Ledger appends and balance cache access for a group run while holding
    that group's lock. Different groups never contend with each other.
    """

    def __init__(self, timeout: Optional[float] = None, max_retries: Optional[int] = None):
        self.timeout = settings.LEDGER_LOCK_TIMEOUT_SECONDS if timeout is None else timeout
        self.max_retries = settings.LEDGER_APPEND_MAX_RETRIES if max_retries is None else max_retries
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def get_lock(self, group_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(group_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[group_id] = lock
            return lock

    @contextmanager
    def hold(self, group_id: str):
        """
        Hold the exclusive section of a group.

        Each attempt waits up to ``timeout`` seconds; after ``max_retries``
        failed attempts ConcurrencyError is raised and nothing has run.
        """
        lock = self.get_lock(group_id)
        attempts = max(1, self.max_retries)

        for attempt in range(1, attempts + 1):
            if lock.acquire(timeout=self.timeout):
                break
            logger.warning(
                f"Group {group_id} busy, lock attempt {attempt}/{attempts} timed out after {self.timeout}s"
            )
        else:
            raise ConcurrencyError(
                f"Group {group_id} is busy, could not obtain exclusive access after {attempts} attempts"
            )

        try:
            yield
        finally:
            lock.release()


# Global registry instance
_lock_registry: Optional[GroupLockRegistry] = None


def get_lock_registry() -> GroupLockRegistry:
    """Get or create the lock registry instance"""
    global _lock_registry
    if _lock_registry is None:
        _lock_registry = GroupLockRegistry()
    return _lock_registry


def group_lock(group_id: str):
    """Context manager holding the exclusive section of ``group_id``."""
    return get_lock_registry().hold(group_id)
