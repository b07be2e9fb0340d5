import logging
import threading
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# (last ledger sequence, member count) the balances were computed from
CacheVersion = Tuple[int, int]


class BalanceCache:
    """Per-group cache of computed net balances.

    Every entry is stored with the version of the group it was computed
    from. A lookup with a different version is a miss, so entries written
    to the database by another process are never hidden by this cache.

    Callers must hold the group's lock (see ``group_locks``) while reading,
    filling or invalidating the entry of that group.
    """

    def __init__(self):
        self._balances: Dict[str, Tuple[CacheVersion, Dict[str, int]]] = {}
        self._guard = threading.Lock()

    def get(self, group_id: str, version: Optional[CacheVersion] = None) -> Optional[Dict[str, int]]:
        with self._guard:
            cached = self._balances.get(group_id)
        if cached is None:
            return None

        cached_version, balances = cached
        if version is not None and version != cached_version:
            logger.debug(f"Balance cache of group {group_id} is stale: {cached_version} != {version}")
            self.invalidate(group_id)
            return None

        logger.debug(f"Balance cache hit for group {group_id}")
        return dict(balances)

    def put(self, group_id: str, version: CacheVersion, balances: Dict[str, int]) -> None:
        with self._guard:
            self._balances[group_id] = (version, dict(balances))

    def invalidate(self, group_id: str) -> None:
        with self._guard:
            self._balances.pop(group_id, None)

    def clear(self) -> None:
        with self._guard:
            self._balances.clear()


# Global cache instance
_balance_cache: Optional[BalanceCache] = None


def get_balance_cache() -> BalanceCache:
    """Get or create the balance cache instance"""
    global _balance_cache
    if _balance_cache is None:
        _balance_cache = BalanceCache()
    return _balance_cache
