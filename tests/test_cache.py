import threading
import time

from marketwatch.utils.cache import TTLCache


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_hit_within_ttl_and_lazy_purge_after_expiry():
    clock = Clock()
    cache = TTLCache(default_ttl=60, clock=clock)
    cache.set("k", ["pools"])

    clock.now += 60
    assert cache.get("k") == ["pools"]

    clock.now += 0.5
    assert cache.get("k") is None
    assert len(cache) == 0


def test_per_entry_ttl_overrides_default():
    clock = Clock()
    cache = TTLCache(default_ttl=60, clock=clock)
    cache.set("short", 1, ttl=5)
    cache.set("long", 2)
    clock.now += 10
    assert cache.get("short") is None
    assert cache.get("long") == 2


def test_sweep_removes_only_expired_entries():
    clock = Clock()
    cache = TTLCache(default_ttl=60, clock=clock)
    cache.set("old", 1)
    clock.now += 30
    cache.set("new", 2)
    clock.now += 31

    assert cache.sweep() == 1
    assert len(cache) == 1
    assert cache.get("new") == 2


def test_delete_and_clear():
    cache = TTLCache()
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")
    assert not cache.has("a")
    cache.clear()
    assert len(cache) == 0


def test_key_ignores_factory_order():
    a = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
    b = "0x1F98431c8aD98523631AE4a59f267346ea31F984"
    assert TTLCache.make_key("ethereum", [a, b], 10, 20) == TTLCache.make_key("ethereum", [b, a], 10, 20)
    assert TTLCache.make_key("Ethereum", [a, b], 10, 20) == f"pairs:ethereum:{b},{a}:10:20"
    assert TTLCache.make_key("ethereum", [a, b], 10, 20) != TTLCache.make_key("ethereum", [a, b], 11, 20)


def test_background_sweeper_evicts_expired_entries():
    cache = TTLCache(default_ttl=0.01)
    cache.set("k", 1)
    cache.start_sweeper(interval=0.01)
    try:
        deadline = time.monotonic() + 2
        while len(cache) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(cache) == 0
    finally:
        cache.stop_sweeper()


def test_concurrent_writers_and_readers():
    cache = TTLCache(default_ttl=60)

    def work(n):
        for i in range(200):
            cache.set(f"{n}:{i}", i)
            assert cache.get(f"{n}:{i}") == i

    threads = [threading.Thread(target=work, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(cache) == 8 * 200
