# marketwatch/utils/cache.py
# Purpose: In-process TTL cache for detection results, with an owned background sweeper.
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

print("[CACHE] module loaded")


class TTLCache:
    """
    Thread-safe key/value store where every entry carries its own TTL.

    Entries are (value, inserted_at, ttl). A hit is valid while
    ``now - inserted_at <= ttl``; expired entries are dropped lazily on read
    and by ``sweep()``, which the optional sweeper thread calls periodically.
    """

    def __init__(self, default_ttl: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = float(default_ttl)
        self._clock = clock
        self._store: Dict[str, Tuple[Any, float, float]] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, inserted_at, ttl = entry
            if self._clock() - inserted_at > ttl:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._store[key] = (value, self._clock(), self.default_ttl if ttl is None else float(ttl))

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def sweep(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, inserted_at, ttl) in self._store.items() if now - inserted_at > ttl]
            for k in expired:
                del self._store[k]
        if expired:
            print(f"[CACHE] sweep removed {len(expired)} expired entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    # ---------- sweeper lifecycle ----------

    def start_sweeper(self, interval: float = 30.0) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()

        def _loop():
            while not self._stop.wait(interval):
                self.sweep()

        self._sweeper = threading.Thread(target=_loop, name="ttlcache-sweeper", daemon=True)
        self._sweeper.start()
        print(f"[CACHE] sweeper started (every {interval}s)")

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None
            print("[CACHE] sweeper stopped")

    # ---------- keys ----------

    @staticmethod
    def make_key(chain: str, factories: Iterable[str], from_block: int, to_block: int) -> str:
        # factories are compared as a set: order of the request list must not matter
        joined = ",".join(sorted(factories))
        return f"pairs:{chain.lower()}:{joined}:{int(from_block)}:{int(to_block)}"
