# marketwatch/utils/liquidity.py
# Purpose: Initial liquidity of a fresh pool, taken from its first Mint event.
#
# Current reserves drift as soon as anyone trades, so they are never used here:
# the amounts deposited by the first Mint after creation are the initial
# liquidity. Later mints (top-ups) are ignored.
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import List, Optional, Sequence

from web3 import Web3

from marketwatch.core.models import (
    LIQUIDITY_ERROR, LIQUIDITY_NONE, LIQUIDITY_OK,
    LiquidityAmounts, LiquidityResult, TokenInfo, V2Mint,
)
from marketwatch.utils.events import V2_MINT_EVENT, V3_MINT_EVENT, decode_mint, fetch_logs
from marketwatch.utils.settle import settle
from marketwatch.utils.token_meta import display_decimals

NO_LIQUIDITY = "No liquidity"
UNABLE_TO_FETCH = "Unable to fetch"
UNKNOWN = "Unknown"

DEFAULT_MINT_WINDOW = 10


def _dbg(msg: str):
    print(f"[liquidity] {msg}")


def _first_mint(codec, logs: Sequence[dict], shape: str):
    """First decodable mint in chain order; undecodable logs are skipped."""
    for log in logs:
        try:
            return decode_mint(codec, log).event
        except Exception as e:
            _dbg(f"skip undecodable {shape} mint log: {e}")
    return None


def get_initial_liquidity(w3: Web3, pool_address: str, creation_block: int,
                          window: int = DEFAULT_MINT_WINDOW, head: Optional[int] = None) -> LiquidityResult:
    pool = Web3.to_checksum_address(pool_address)
    start, end = int(creation_block), int(creation_block) + int(window)
    if head is not None:
        end = max(start, min(end, int(head)))
    _dbg(f"initial liquidity pool={pool} blocks=[{start}, {end}]")

    outcomes = settle({
        "v2": lambda: fetch_logs(w3, pool, V2_MINT_EVENT, start, end),
        "v3": lambda: fetch_logs(w3, pool, V3_MINT_EVENT, start, end),
    })

    # V2-shaped mint wins when both exist
    for shape in ("v2", "v3"):
        outcome = outcomes[shape]
        if not outcome.ok:
            _dbg(f"{shape} Mint query failed pool={pool}: {outcome.error}")
            continue
        mint = _first_mint(w3.codec, outcome.value, shape)
        if mint is not None:
            _dbg(f"initial liquidity from {shape} Mint amount0={mint.amount0} amount1={mint.amount1}")
            return LiquidityResult(
                status=LIQUIDITY_OK,
                amounts=LiquidityAmounts(reserve0=mint.amount0, reserve1=mint.amount1),
                source="v2" if isinstance(mint, V2Mint) else "v3",
            )

    if any(not o.ok for o in outcomes.values()):
        return LiquidityResult(status=LIQUIDITY_ERROR)

    _dbg(f"no Mint event found for pool {pool}, likely no initial liquidity yet")
    return LiquidityResult(status=LIQUIDITY_NONE)


def format_units(raw: int, decimals: int) -> Decimal:
    # uint256 needs ~78 significant digits
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(int(raw)).scaleb(-int(decimals))


def format_amount(raw: int, decimals: int) -> str:
    with localcontext() as ctx:
        ctx.prec = 100
        return str(format_units(raw, decimals).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_initial_liquidity(result: LiquidityResult, token_infos: Sequence[Optional[TokenInfo]]) -> str:
    if result.status == LIQUIDITY_ERROR:
        return UNABLE_TO_FETCH
    try:
        r0, r1 = int(result.amounts.reserve0), int(result.amounts.reserve1)
        if r0 == 0 and r1 == 0:
            return NO_LIQUIDITY

        infos: List[Optional[TokenInfo]] = list(token_infos) + [None, None]
        parts = []
        for pos, raw in enumerate((r0, r1)):
            info = infos[pos]
            symbol = (info.symbol if info else None) or f"TOKEN{pos}"
            parts.append(f"{format_amount(raw, display_decimals(info))} {symbol}")
        return " / ".join(parts)
    except Exception as e:
        _dbg(f"format error: {e}")
        return UNKNOWN
