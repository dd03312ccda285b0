# marketwatch/utils/holders.py
# Purpose: Approximate top LP-token holders by replaying recent Transfer logs.
#
# Only the last `max_blocks` blocks (never before the pool's creation block) are
# replayed, so balances are relative changes inside that window. For a pool that
# was created inside the window this equals the real balance; for older pools
# holders whose tokens did not move recently are missed. Full-history replay is
# intentionally not done.
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from web3 import Web3

from marketwatch.core.models import DecodedLog, Transfer
from marketwatch.utils.addr import is_zero_address
from marketwatch.utils.events import TRANSFER_EVENT, decode_transfer, fetch_logs

DEFAULT_HOLDER_LIMIT = 5
DEFAULT_MAX_BLOCKS = 1000


def _dbg(msg: str) -> None:
    print(f"[holders] {msg}")


def holder_scan_start(creation_block: int, head: int, max_blocks: int = DEFAULT_MAX_BLOCKS) -> int:
    return max(int(creation_block), int(head) - int(max_blocks))


def replay_transfers(transfers: Iterable[DecodedLog]) -> Dict[str, int]:
    """Signed balance deltas per address; mint/burn only touch the non-zero side."""
    ordered = sorted(transfers, key=lambda d: (d.block_number, d.log_index))
    balances: Dict[str, int] = {}
    for decoded in ordered:
        ev: Transfer = decoded.event
        if not is_zero_address(ev.src):
            balances[ev.src] = balances.get(ev.src, 0) - ev.value
        if not is_zero_address(ev.dst):
            balances[ev.dst] = balances.get(ev.dst, 0) + ev.value
    return balances


def rank_holders(balances: Dict[str, int], limit: int = DEFAULT_HOLDER_LIMIT) -> List[str]:
    positive = [(addr, bal) for addr, bal in balances.items() if bal > 0]
    # sorted() is stable, so equal balances keep first-seen order
    positive = sorted(positive, key=lambda kv: kv[1], reverse=True)
    return [Web3.to_checksum_address(addr) for addr, _ in positive[:max(0, int(limit))]]


def get_top_holders(w3: Web3, pool_address: str, creation_block: int,
                    limit: int = DEFAULT_HOLDER_LIMIT, max_blocks: int = DEFAULT_MAX_BLOCKS,
                    head: Optional[int] = None) -> List[str]:
    try:
        current = int(w3.eth.block_number) if head is None else int(head)
        start = holder_scan_start(creation_block, current, max_blocks)
        logs = fetch_logs(w3, pool_address, TRANSFER_EVENT, start, current)
        transfers = [decode_transfer(w3.codec, log) for log in logs]
        holders = rank_holders(replay_transfers(transfers), limit)
        _dbg(f"pool={pool_address} blocks=[{start}, {current}] transfers={len(transfers)} holders={len(holders)}")
        return holders
    except Exception as e:
        _dbg(f"error getting top holders for {pool_address}: {e}")
        return []
