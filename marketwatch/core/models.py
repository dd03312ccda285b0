# marketwatch/core/models.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

# ---------- decoded events ----------

@dataclass(frozen=True)
class PairCreated:
    token0: str
    token1: str
    pair: str


@dataclass(frozen=True)
class PoolCreated:
    token0: str
    token1: str
    fee: int
    tick_spacing: int
    pool: str


@dataclass(frozen=True)
class V2Mint:
    sender: str
    amount0: int
    amount1: int


@dataclass(frozen=True)
class V3Mint:
    sender: str
    owner: str
    tick_lower: int
    tick_upper: int
    amount: int
    amount0: int
    amount1: int


@dataclass(frozen=True)
class Transfer:
    src: str
    dst: str
    value: int


CreationEvent = Union[PairCreated, PoolCreated]
MintEvent = Union[V2Mint, V3Mint]
DecodedEvent = Union[CreationEvent, MintEvent, Transfer]


@dataclass(frozen=True)
class DecodedLog:
    """A typed event plus where it sat in the chain."""
    event: DecodedEvent
    block_number: int
    log_index: int
    transaction_hash: str


# ---------- pools ----------

@dataclass(frozen=True)
class PoolCreationRecord:
    pool_address: str
    tokens: Tuple[str, str]      # token0, token1 exactly as emitted
    factory: str
    block_number: int
    transaction_hash: str
    created_at: datetime         # block timestamp, UTC
    pool_type: str               # "v2" | "v3"
    fee_tier: Optional[int] = None
    tick_spacing: Optional[int] = None


@dataclass(frozen=True)
class EnrichedPool:
    record: PoolCreationRecord
    init_liquidity: str
    top_holders: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        r = self.record
        out: Dict[str, Any] = {
            "pair_address": r.pool_address,
            "tokens": list(r.tokens),
            "init_liquidity": self.init_liquidity,
            "top_holders": list(self.top_holders),
            "created_at": r.created_at.isoformat().replace("+00:00", "Z"),
            "block_number": r.block_number,
            "transaction_hash": r.transaction_hash,
            "factory": r.factory,
            "pool_type": r.pool_type,
        }
        if r.pool_type == "v3":
            out["fee"] = str(r.fee_tier)
            out["tick_spacing"] = r.tick_spacing
        return out


# ---------- enrichment ----------

LIQUIDITY_OK = "ok"
LIQUIDITY_NONE = "none"
LIQUIDITY_ERROR = "error"


@dataclass(frozen=True)
class LiquidityAmounts:
    reserve0: int
    reserve1: int


@dataclass(frozen=True)
class LiquidityResult:
    status: str
    amounts: LiquidityAmounts = LiquidityAmounts(0, 0)
    source: Optional[str] = None   # "v2" | "v3" when a mint was used


@dataclass(frozen=True)
class TokenInfo:
    address: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Optional[int] = None


# ---------- requests / results ----------

@dataclass(frozen=True)
class DetectRequest:
    chain: str
    factories: Tuple[str, ...]
    window_minutes: int
    rpc_url: Optional[str] = None


@dataclass(frozen=True)
class DetectResult:
    success: bool
    chain: str
    window_minutes: Any
    pairs: Tuple[EnrichedPool, ...] = ()
    from_block: Optional[int] = None
    to_block: Optional[int] = None
    rpc_info: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {
                "success": False,
                "chain": self.chain,
                "window_minutes": self.window_minutes,
                "error": self.error,
            }
        pairs: List[Dict[str, Any]] = [p.to_dict() for p in self.pairs]
        return {
            "success": True,
            "chain": self.chain,
            "window_minutes": self.window_minutes,
            "from_block": self.from_block,
            "to_block": self.to_block,
            "total_pairs_found": len(pairs),
            "pairs": pairs,
            "rpc_info": self.rpc_info,
        }
