# marketwatch/config.py
# Purpose: Runtime knobs read from the environment (entrypoints call load_dotenv() first).

import os

print("[CONFIG] module loaded")


def _env_number(name: str, default, cast=int):
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        print(f"[CONFIG] invalid {name}={raw!r}; using default {default}")
        return default


CACHE_TTL_SECONDS = _env_number("CACHE_TTL_SECONDS", 60, float)
CACHE_SWEEP_SECONDS = _env_number("CACHE_SWEEP_SECONDS", 30, float)

# Cooperative pacing between upstream calls
POOL_DELAY_SECONDS = _env_number("POOL_DELAY_MS", 100, float) / 1000.0
TOKEN_DELAY_SECONDS = _env_number("TOKEN_DELAY_MS", 50, float) / 1000.0

TOP_HOLDERS_LIMIT = _env_number("TOP_HOLDERS_LIMIT", 5)
HOLDER_SCAN_BLOCKS = _env_number("HOLDER_SCAN_BLOCKS", 1000)
MINT_SCAN_BLOCKS = _env_number("MINT_SCAN_BLOCKS", 10)

RPC_TIMEOUT_SECONDS = _env_number("RPC_TIMEOUT_SECONDS", 30)
RPC_QPS = _env_number("RPC_QPS", 10.0, float)

MIN_WINDOW_MINUTES = 1
MAX_WINDOW_MINUTES = 1440
DEFAULT_WINDOW_MINUTES = 60

__all__ = [
    "CACHE_TTL_SECONDS", "CACHE_SWEEP_SECONDS", "POOL_DELAY_SECONDS", "TOKEN_DELAY_SECONDS",
    "TOP_HOLDERS_LIMIT", "HOLDER_SCAN_BLOCKS", "MINT_SCAN_BLOCKS", "RPC_TIMEOUT_SECONDS",
    "RPC_QPS", "MIN_WINDOW_MINUTES", "MAX_WINDOW_MINUTES", "DEFAULT_WINDOW_MINUTES",
]
