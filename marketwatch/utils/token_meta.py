# marketwatch/utils/token_meta.py
from typing import Optional
from web3 import Web3

from marketwatch.core.models import TokenInfo
from marketwatch.utils.settle import settle

DEFAULT_DECIMALS = 18

ERC20_ABI = [
    {"name":"name","outputs":[{"type":"string","name":""}],"inputs":[],"stateMutability":"view","type":"function"},
    {"name":"symbol","outputs":[{"type":"string","name":""}],"inputs":[],"stateMutability":"view","type":"function"},
    {"name":"decimals","outputs":[{"type":"uint8","name":""}],"inputs":[],"stateMutability":"view","type":"function"},
]

def _dbg(msg: str):
    print(f"[token_meta] {msg}")

def get_token_info(w3: Web3, token_address: str) -> TokenInfo:
    """
    name / symbol / decimals, one eth_call each, fetched side by side.
    A field whose call reverts or times out stays None; nothing is retried.
    """
    token = Web3.to_checksum_address(token_address)
    contract = w3.eth.contract(address=token, abi=ERC20_ABI)

    fields = settle({
        "name": lambda: contract.functions.name().call(),
        "symbol": lambda: contract.functions.symbol().call(),
        "decimals": lambda: contract.functions.decimals().call(),
    })
    for field, outcome in fields.items():
        if not outcome.ok:
            _dbg(f"{field}() failed for {token}: {outcome.error}")

    def _value(field: str):
        return fields[field].value if fields[field].ok else None

    decimals = _value("decimals")
    return TokenInfo(
        address=token,
        name=_value("name"),
        symbol=_value("symbol"),
        decimals=int(decimals) if decimals is not None else None,
    )

def display_decimals(info: Optional[TokenInfo]) -> int:
    """Decimals for formatting: the token's own, else 18."""
    if info is None or info.decimals is None:
        return DEFAULT_DECIMALS
    return info.decimals
