# marketwatch/utils/ratelimit.py
import time, threading
from collections import deque

from marketwatch.config import RPC_QPS

# Default QPS (requests per second) against a single RPC endpoint.
# You can override at runtime (see set_default_qps).
DEFAULT_QPS = RPC_QPS

# One limiter per "host key" (normally the RPC URL)
_LIMITERS = {}
_LOCK = threading.Lock()

class RateLimiter:
    def __init__(self, max_per_sec: float):
        self.max_per_sec = max(0.1, float(max_per_sec))
        self.window = deque()
        self.lock = threading.Lock()

    def wait(self):
        with self.lock:
            now = time.monotonic()
            # drop timestamps older than 1s
            while self.window and now - self.window[0] > 1.0:
                self.window.popleft()

            if len(self.window) >= self.max_per_sec:
                # sleep until we drop under the limit
                sleep_for = 1.0 - (now - self.window[0]) + 0.001
                if sleep_for > 0:
                    time.sleep(sleep_for)
                # cleanup after sleeping
                now = time.monotonic()
                while self.window and now - self.window[0] > 1.0:
                    self.window.popleft()

            self.window.append(time.monotonic())

def get_limiter(host_key: str, max_qps: float | None = None) -> RateLimiter:
    with _LOCK:
        qps = DEFAULT_QPS if max_qps is None else float(max_qps)
        lim = _LIMITERS.get(host_key)
        if lim is None or lim.max_per_sec != max(0.1, qps):
            lim = RateLimiter(qps)
            _LIMITERS[host_key] = lim
        return lim

def set_default_qps(qps: float):
    global DEFAULT_QPS
    DEFAULT_QPS = max(0.1, float(qps))

def pace(seconds: float):
    """Cooperative pause between upstream calls; no-op for non-positive values."""
    if seconds and seconds > 0:
        time.sleep(seconds)
