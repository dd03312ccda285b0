# marketwatch/core/scanner.py
# Purpose: Find pools created by a set of factories inside [from_block, to_block].
#
# Per factory, the V2 (PairCreated) and V3 (PoolCreated) queries run side by side
# and fail independently; a bad log is skipped; a failing factory is skipped.
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from web3 import Web3

from marketwatch.core.models import PairCreated, PoolCreationRecord
from marketwatch.utils.events import (
    PAIR_CREATED_EVENT, POOL_CREATED_EVENT, decode_creation, fetch_logs,
)
from marketwatch.utils.ratelimit import RateLimiter
from marketwatch.utils.settle import settle


def _dbg(msg: str) -> None:
    print(f"[SCANNER] {msg}")


class _BlockTimes:
    """Memoizes block timestamps for the duration of one scan."""

    def __init__(self, w3: Web3):
        self.w3 = w3
        self._seen: Dict[int, datetime] = {}

    def get(self, block_number: int) -> datetime:
        if block_number not in self._seen:
            block = self.w3.eth.get_block(block_number)
            self._seen[block_number] = datetime.fromtimestamp(int(block["timestamp"]), tz=timezone.utc)
        return self._seen[block_number]


def _to_record(w3: Web3, log, factory: str, block_times: _BlockTimes) -> PoolCreationRecord:
    decoded = decode_creation(w3.codec, log)
    ev = decoded.event
    created_at = block_times.get(decoded.block_number)
    if isinstance(ev, PairCreated):
        return PoolCreationRecord(
            pool_address=ev.pair,
            tokens=(ev.token0, ev.token1),
            factory=factory,
            block_number=decoded.block_number,
            transaction_hash=decoded.transaction_hash,
            created_at=created_at,
            pool_type="v2",
        )
    return PoolCreationRecord(
        pool_address=ev.pool,
        tokens=(ev.token0, ev.token1),
        factory=factory,
        block_number=decoded.block_number,
        transaction_hash=decoded.transaction_hash,
        created_at=created_at,
        pool_type="v3",
        fee_tier=ev.fee,
        tick_spacing=ev.tick_spacing,
    )


def scan_factory(w3: Web3, factory: str, from_block: int, to_block: int,
                 block_times: Optional[_BlockTimes] = None) -> List[PoolCreationRecord]:
    factory = Web3.to_checksum_address(factory)
    block_times = block_times or _BlockTimes(w3)

    outcomes = settle({
        "v2": lambda: fetch_logs(w3, factory, PAIR_CREATED_EVENT, from_block, to_block),
        "v3": lambda: fetch_logs(w3, factory, POOL_CREATED_EVENT, from_block, to_block),
    })

    records: List[PoolCreationRecord] = []
    for shape, outcome in outcomes.items():
        if not outcome.ok:
            _dbg(f"{shape} query failed factory={factory}: {outcome.error}")
            continue
        _dbg(f"{shape} logs factory={factory} count={len(outcome.value)}")
        for log in outcome.value:
            try:
                records.append(_to_record(w3, log, factory, block_times))
            except Exception as e:
                _dbg(f"skip {shape} log tx={log.get('transactionHash')!r} factory={factory}: {e}")
    return records


def scan_factories(w3: Web3, factories: Iterable[str], from_block: int, to_block: int,
                   limiter: Optional[RateLimiter] = None) -> List[PoolCreationRecord]:
    """Union of every successfully decoded creation record, in discovery order (not deduplicated)."""
    block_times = _BlockTimes(w3)
    found: List[PoolCreationRecord] = []
    for factory in factories:
        if limiter is not None:
            limiter.wait()
        try:
            found.extend(scan_factory(w3, factory, from_block, to_block, block_times))
        except Exception as e:
            _dbg(f"factory {factory} failed, skipping: {e}")
    _dbg(f"scan done range=[{from_block}, {to_block}] records={len(found)}")
    return found


def deduplicate_pools(records: Iterable[PoolCreationRecord]) -> List[PoolCreationRecord]:
    """Keep the first record per pool address, preserving order."""
    seen = set()
    unique: List[PoolCreationRecord] = []
    for rec in records:
        key = rec.pool_address.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(rec)
    return unique
