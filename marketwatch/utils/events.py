# marketwatch/utils/events.py
# Purpose: Event ABIs for factories / pools / LP tokens, log fetching and typed decoding.
#
# Decoding is a tagged-variant attempt: the log's topic0 selects one of the
# candidate ABIs, get_event_data decodes it, and the args are mapped onto the
# matching dataclass. Anything else raises LogDecodeError.
from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

from hexbytes import HexBytes
from web3 import Web3
from web3._utils.events import get_event_data

from marketwatch.core.models import (
    DecodedLog, PairCreated, PoolCreated, Transfer, V2Mint, V3Mint,
)


class LogDecodeError(ValueError):
    """A log did not match any expected event shape."""


def _event(name: str, inputs: List[Tuple[str, str, bool]]) -> Dict[str, Any]:
    return {
        "anonymous": False,
        "name": name,
        "type": "event",
        "inputs": [{"indexed": idx, "name": n, "type": t} for n, t, idx in inputs],
    }


# V2 factory
PAIR_CREATED_EVENT = _event("PairCreated", [
    ("token0", "address", True),
    ("token1", "address", True),
    ("pair", "address", False),
    ("allPairsLength", "uint256", False),
])

# V3 factory
POOL_CREATED_EVENT = _event("PoolCreated", [
    ("token0", "address", True),
    ("token1", "address", True),
    ("fee", "uint24", True),
    ("tickSpacing", "int24", False),
    ("pool", "address", False),
])

V2_MINT_EVENT = _event("Mint", [
    ("sender", "address", True),
    ("amount0", "uint256", False),
    ("amount1", "uint256", False),
])

V3_MINT_EVENT = _event("Mint", [
    ("sender", "address", False),
    ("owner", "address", True),
    ("tickLower", "int24", True),
    ("tickUpper", "int24", True),
    ("amount", "uint128", False),
    ("amount0", "uint256", False),
    ("amount1", "uint256", False),
])

TRANSFER_EVENT = _event("Transfer", [
    ("from", "address", True),
    ("to", "address", True),
    ("value", "uint256", False),
])


def event_signature(event_abi: Dict[str, Any]) -> str:
    return f"{event_abi['name']}({','.join(i['type'] for i in event_abi['inputs'])})"


def event_topic(event_abi: Dict[str, Any]) -> str:
    """0x-prefixed keccak of the canonical signature (topic0)."""
    return Web3.to_hex(Web3.keccak(text=event_signature(event_abi)))


def _as_hex(value: Any) -> str:
    if isinstance(value, str):
        return value.lower()
    return Web3.to_hex(value).lower()


def log_position(log: Dict[str, Any]) -> Tuple[int, int]:
    return int(log["blockNumber"]), int(log.get("logIndex") or 0)


def fetch_logs(w3: Web3, address: str, event_abi: Dict[str, Any], from_block: int, to_block: int) -> list:
    """One eth_getLogs by address + topic0 + range, returned in chain order."""
    logs = w3.eth.get_logs({
        "address": Web3.to_checksum_address(address),
        "topics": [event_topic(event_abi)],
        "fromBlock": int(from_block),
        "toBlock": int(to_block),
    })
    return sorted(logs, key=log_position)


def decode_log(codec, log: Dict[str, Any], candidates: Sequence[Dict[str, Any]]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Return (matched_abi, args) for the first candidate whose topic0 matches."""
    topics = list(log.get("topics") or [])
    if not topics:
        raise LogDecodeError("log has no topics")
    topic0 = _as_hex(topics[0])
    for abi in candidates:
        if event_topic(abi) != topic0:
            continue
        entry = dict(log)
        entry["topics"] = [HexBytes(t) for t in topics]
        try:
            data = get_event_data(codec, abi, entry)
        except Exception as e:
            raise LogDecodeError(f"{event_signature(abi)} decode failed: {e}") from e
        return abi, dict(data["args"])
    raise LogDecodeError(f"unexpected topic0 {topic0}")


def _wrap(log: Dict[str, Any], event: Any) -> DecodedLog:
    block, index = log_position(log)
    return DecodedLog(event=event, block_number=block, log_index=index,
                      transaction_hash=_as_hex(log.get("transactionHash") or b""))


def _addr(v: Any) -> str:
    return Web3.to_checksum_address(v)


def decode_creation(codec, log: Dict[str, Any]) -> DecodedLog:
    abi, args = decode_log(codec, log, (PAIR_CREATED_EVENT, POOL_CREATED_EVENT))
    if abi is PAIR_CREATED_EVENT:
        ev = PairCreated(
            token0=_addr(args["token0"]),
            token1=_addr(args["token1"]),
            pair=_addr(args["pair"]),
        )
    else:
        ev = PoolCreated(
            token0=_addr(args["token0"]),
            token1=_addr(args["token1"]),
            fee=int(args["fee"]),
            tick_spacing=int(args["tickSpacing"]),
            pool=_addr(args["pool"]),
        )
    return _wrap(log, ev)


def decode_mint(codec, log: Dict[str, Any]) -> DecodedLog:
    abi, args = decode_log(codec, log, (V2_MINT_EVENT, V3_MINT_EVENT))
    if abi is V2_MINT_EVENT:
        ev = V2Mint(sender=_addr(args["sender"]), amount0=int(args["amount0"]), amount1=int(args["amount1"]))
    else:
        ev = V3Mint(
            sender=_addr(args["sender"]),
            owner=_addr(args["owner"]),
            tick_lower=int(args["tickLower"]),
            tick_upper=int(args["tickUpper"]),
            amount=int(args["amount"]),
            amount0=int(args["amount0"]),
            amount1=int(args["amount1"]),
        )
    return _wrap(log, ev)


def decode_transfer(codec, log: Dict[str, Any]) -> DecodedLog:
    _, args = decode_log(codec, log, (TRANSFER_EVENT,))
    return _wrap(log, Transfer(src=_addr(args["from"]), dst=_addr(args["to"]), value=int(args["value"])))
