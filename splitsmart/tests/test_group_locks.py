import threading

import pytest

from splitsmart.core.exceptions import ConcurrencyError
from splitsmart.services.group_locks import GroupLockRegistry, get_lock_registry


@pytest.mark.unit
class TestGroupLockRegistry:

    def test_same_group_same_lock(self):
        registry = GroupLockRegistry(timeout=0.01, max_retries=1)
        assert registry.get_lock("g1") is registry.get_lock("g1")
        assert registry.get_lock("g1") is not registry.get_lock("g2")

    def test_released_after_block(self):
        registry = GroupLockRegistry(timeout=0.01, max_retries=1)
        with registry.hold("g1"):
            assert registry.get_lock("g1").locked()
        assert not registry.get_lock("g1").locked()

    def test_released_after_exception(self):
        registry = GroupLockRegistry(timeout=0.01, max_retries=1)
        with pytest.raises(ValueError):
            with registry.hold("g1"):
                raise ValueError("boom")
        assert not registry.get_lock("g1").locked()

    def test_busy_group_raises_after_retries(self):
        registry = GroupLockRegistry(timeout=0.01, max_retries=3)
        registry.get_lock("g1").acquire()
        try:
            with pytest.raises(ConcurrencyError, match="3 attempts"):
                with registry.hold("g1"):
                    pytest.fail("must not enter a busy group")
        finally:
            registry.get_lock("g1").release()

    def test_other_groups_are_not_blocked(self):
        registry = GroupLockRegistry(timeout=0.01, max_retries=1)
        with registry.hold("g1"):
            with registry.hold("g2"):
                pass

    def test_waits_for_release_within_timeout(self):
        registry = GroupLockRegistry(timeout=2.0, max_retries=1)
        holding = threading.Event()
        release = threading.Event()

        def holder():
            with registry.hold("g1"):
                holding.set()
                release.wait(timeout=5)

        thread = threading.Thread(target=holder)
        thread.start()
        holding.wait(timeout=5)

        threading.Timer(0.05, release.set).start()
        with registry.hold("g1"):
            pass
        thread.join(timeout=5)

    def test_serializes_critical_sections(self):
        registry = GroupLockRegistry(timeout=5.0, max_retries=1)
        counter = {"value": 0, "max_inside": 0, "inside": 0}

        def worker():
            for _ in range(200):
                with registry.hold("g1"):
                    counter["inside"] += 1
                    counter["max_inside"] = max(counter["max_inside"], counter["inside"])
                    counter["value"] += 1
                    counter["inside"] -= 1

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert counter["value"] == 800
        assert counter["max_inside"] == 1

    def test_global_registry(self):
        assert get_lock_registry() is get_lock_registry()
