# marketwatch/utils/addr.py
from typing import Iterable, List
from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_evm_address(raw: str) -> str:
    """Strictly validate & checksum an EVM address."""
    s = (raw or "").strip()
    if "..." in s:
        raise ValueError("Ellipses ('...') are not allowed. Provide the full 42-char 0x address.")
    if not s.startswith("0x") or len(s) != 42:
        raise ValueError(f"Invalid address {s!r}: must be 0x-prefixed and 42 characters long (0x + 40 hex).")
    try:
        return Web3.to_checksum_address(s)
    except ValueError:
        raise ValueError(f"Invalid address {s!r}: not a valid hex string.")


def normalize_address_list(raw: Iterable[str]) -> List[str]:
    """Checksum every non-blank entry, keeping input order and dropping repeats."""
    out: List[str] = []
    for item in raw:
        if not (item or "").strip():
            continue
        addr = normalize_evm_address(item)
        if addr not in out:
            out.append(addr)
    return out


def is_zero_address(addr: str) -> bool:
    return (addr or "").lower() == ZERO_ADDRESS
