# marketwatch/core/detect.py
# Purpose: Request pipeline for "new pairs in the last N minutes".
#
#   validate -> resolve RPC -> block range -> cache check -> scan factories
#   -> dedupe -> enrich -> cache write -> result
#
# Fatal problems (bad input, no RPC, head block unavailable) come back as a
# failed DetectResult rather than an exception.
from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Sequence, Union

from web3 import Web3

from marketwatch import config
from marketwatch.chains import (
    chain_key, get_chain_config, make_web3, resolve_block_range, resolve_rpc_url,
)
from marketwatch.core.enrich import EnrichOptions, enrich_pools
from marketwatch.core.models import DetectRequest, DetectResult
from marketwatch.core.scanner import deduplicate_pools, scan_factories
from marketwatch.utils.addr import normalize_address_list
from marketwatch.utils.cache import TTLCache
from marketwatch.utils.ratelimit import get_limiter

print("[DETECT] module loaded")

Web3Factory = Callable[[str, str], Web3]

DEFAULT_RPC_HINT = "Using default RPC. If experiencing rate limits, provide a custom rpc_url parameter"


def split_factories(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Accept "0xA,0xB" or a list; blanks are dropped."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    return [s.strip() for s in items if s and s.strip()]


def parse_window(raw: Any) -> int:
    try:
        window = int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValueError(f"window_minutes must be an integer, got {raw!r}")
    if not config.MIN_WINDOW_MINUTES <= window <= config.MAX_WINDOW_MINUTES:
        raise ValueError(
            f"window_minutes must be between {config.MIN_WINDOW_MINUTES} and {config.MAX_WINDOW_MINUTES}, got {window}"
        )
    return window


def build_request(chain: str, factories: Union[str, Sequence[str], None], window_minutes: Any,
                  rpc_url: Optional[str] = None) -> DetectRequest:
    """Validate + normalize raw inputs; raises ValueError on bad input."""
    key = chain_key(chain)
    if not key:
        raise ValueError("chain is required")

    window = parse_window(window_minutes)
    addrs = normalize_address_list(split_factories(factories))
    if not addrs:
        defaults = (get_chain_config(key) or {}).get("common_factories") or []
        if not defaults:
            raise ValueError(f"No factories given and no default factories known for chain: {chain}")
        print(f"[DETECT] no factories given; using {len(defaults)} defaults for {key}")
        addrs = list(defaults)

    return DetectRequest(
        chain=key,
        factories=tuple(addrs),
        window_minutes=window,
        rpc_url=(rpc_url or "").strip() or None,
    )


def _failure(chain: str, window: Any, msg: str) -> DetectResult:
    print(f"[DETECT] FAIL chain={chain} -> {msg}")
    return DetectResult(success=False, chain=chain, window_minutes=window, error=msg)


def detect_new_pairs(request: DetectRequest, *, cache: Optional[TTLCache] = None,
                     web3_factory: Web3Factory = make_web3,
                     options: Optional[EnrichOptions] = None) -> DetectResult:
    chain = request.chain
    print(f"[DETECT] start chain={chain} factories={len(request.factories)} window={request.window_minutes}m")

    # 1) input
    try:
        request = build_request(chain, list(request.factories), request.window_minutes, request.rpc_url)
    except ValueError as e:
        return _failure(chain, request.window_minutes, str(e))

    # 2) RPC
    try:
        rpc = resolve_rpc_url(request.chain, request.rpc_url)
        w3 = web3_factory(rpc, request.chain)
    except Exception as e:
        return _failure(request.chain, request.window_minutes, str(e))
    rpc_info = f"Using custom RPC: {request.rpc_url}" if request.rpc_url else DEFAULT_RPC_HINT

    # 3) block range
    try:
        from_block, to_block = resolve_block_range(w3, request.chain, request.window_minutes)
    except Exception as e:
        return _failure(request.chain, request.window_minutes, f"Failed to detect new pairs: {e}")

    # 4) cache
    cache_key = TTLCache.make_key(request.chain, request.factories, from_block, to_block)
    if cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            print(f"[DETECT] cache hit {cache_key}")
            return cached

    # 5-7) scan, dedupe, enrich
    try:
        limiter = get_limiter(rpc)
        records = scan_factories(w3, request.factories, from_block, to_block, limiter=limiter)
        unique = deduplicate_pools(records)
        print(f"[DETECT] records={len(records)} unique={len(unique)}")
        pools = enrich_pools(w3, unique, options, head=to_block)
    except Exception as e:
        return _failure(request.chain, request.window_minutes, f"Failed to detect new pairs: {e}")

    result = DetectResult(
        success=True,
        chain=request.chain,
        window_minutes=request.window_minutes,
        pairs=tuple(pools),
        from_block=from_block,
        to_block=to_block,
        rpc_info=rpc_info,
    )

    # 8) cache write
    if cache is not None:
        cache.set(cache_key, result)
    print(f"[DETECT] done chain={request.chain} range=[{from_block}, {to_block}] pairs={len(pools)}")
    return result
