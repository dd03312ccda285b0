# marketwatch/core/enrich.py
# Purpose: Attach initial liquidity + top holders to each discovered pool.
# A pool is never dropped here: whatever fails degrades to sentinel values.
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from web3 import Web3

from marketwatch import config
from marketwatch.core.models import EnrichedPool, PoolCreationRecord, TokenInfo
from marketwatch.utils.holders import get_top_holders
from marketwatch.utils.liquidity import (
    UNABLE_TO_FETCH, format_initial_liquidity, get_initial_liquidity,
)
from marketwatch.utils.ratelimit import pace
from marketwatch.utils.token_meta import get_token_info


def _dbg(msg: str) -> None:
    print(f"[ENRICH] {msg}")


@dataclass(frozen=True)
class EnrichOptions:
    holders_limit: int = config.TOP_HOLDERS_LIMIT
    holder_scan_blocks: int = config.HOLDER_SCAN_BLOCKS
    mint_scan_blocks: int = config.MINT_SCAN_BLOCKS
    pool_delay: float = config.POOL_DELAY_SECONDS
    token_delay: float = config.TOKEN_DELAY_SECONDS


def enrich_pool(w3: Web3, record: PoolCreationRecord, options: EnrichOptions,
                head: Optional[int] = None) -> EnrichedPool:
    liquidity = get_initial_liquidity(
        w3, record.pool_address, record.block_number, options.mint_scan_blocks, head=head,
    )

    infos: List[TokenInfo] = []
    for token in record.tokens:
        pace(options.token_delay)
        infos.append(get_token_info(w3, token))

    holders = get_top_holders(
        w3,
        record.pool_address,
        record.block_number,
        limit=options.holders_limit,
        max_blocks=options.holder_scan_blocks,
        head=head,
    )
    return EnrichedPool(
        record=record,
        init_liquidity=format_initial_liquidity(liquidity, infos),
        top_holders=tuple(holders),
    )


def enrich_pools(w3: Web3, records: Iterable[PoolCreationRecord], options: Optional[EnrichOptions] = None,
                 head: Optional[int] = None) -> List[EnrichedPool]:
    options = options or EnrichOptions()
    enriched: List[EnrichedPool] = []
    for record in records:
        pace(options.pool_delay)
        try:
            pool = enrich_pool(w3, record, options, head=head)
            _dbg(f"OK pool={record.pool_address} liquidity={pool.init_liquidity!r} holders={len(pool.top_holders)}")
        except Exception as e:
            _dbg(f"FAIL pool={record.pool_address} -> {e}")
            pool = EnrichedPool(record=record, init_liquidity=UNABLE_TO_FETCH, top_holders=())
        enriched.append(pool)
    return enriched
