# marketwatch/chains.py
# Purpose: Chain registry (block times, default RPCs, common factories) + web3 factory (Web3 v7).
# Injects POA middleware for PoA-style chains.

import math
import os
from typing import Dict, Any, Optional, Tuple
from web3 import Web3
from web3.middleware.proof_of_authority import ExtraDataToPOAMiddleware

from marketwatch.config import RPC_TIMEOUT_SECONDS

print("[CHAINS] module loaded (web3 v7)")

# Used when the chain is not in the registry (Ethereum's block time)
DEFAULT_BLOCK_TIME = 12

# Chains whose headers carry oversized extraData
POA_CHAIN_IDS = {56, 97, 137, 100}


class RpcConfigError(ValueError):
    """No RPC endpoint could be resolved for a chain."""


def _chain(name: str, chainid: int, block_time: float, default_rpc: str, factories: list) -> Dict[str, Any]:
    return {
        "name": name,
        "chainid": chainid,
        "block_time": block_time,
        "default_rpc": default_rpc,
        "common_factories": [Web3.to_checksum_address(f) for f in factories],
    }


CHAINS = {
    "ethereum": _chain("Ethereum", 1, 12, "https://eth.llamarpc.com", [
        "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",  # Uniswap V2
        "0x1F98431c8aD98523631AE4a59f267346ea31F984",  # Uniswap V3
        "0xC0AEe478e3658e2610c5F7A4A2E1777cE9e4f2Ac",  # Sushiswap
    ]),
    "polygon": _chain("Polygon", 137, 2, "https://polygon-rpc.com", [
        "0x5757371414417b8C6CAad45bAeF941aBc7d3Ab32",  # Quickswap
        "0xc35DADB65012eC5796536bD9864eD8773aBc74C4",  # Sushiswap
    ]),
    "arbitrum": _chain("Arbitrum One", 42161, 0.25, "https://arb1.arbitrum.io/rpc", [
        "0xf1D7CC64Fb4452F05c498126312eBE29f30Fbcf9",  # Camelot
        "0xc35DADB65012eC5796536bD9864eD8773aBc74C4",  # Sushiswap
    ]),
    "optimism": _chain("Optimism", 10, 2, "https://mainnet.optimism.io", [
        "0x25CbdDb98b35ab1FF77413456B31EC81A6B6B746",  # Velodrome
    ]),
    "base": _chain("Base", 8453, 2, "https://mainnet.base.org", [
        "0x8909Dc15e40173Ff4699343b6eB8132c65e18eC6",  # BaseSwap
        "0x420DD381b31aEf6683db6B902084cB0FFECe40Da",  # Aerodrome
    ]),
    "bsc": _chain("BNB Smart Chain", 56, 3, "https://bsc-dataseed.binance.org", [
        "0xcA143Ce32Fe78f1f7019d7d551a6402fC5350c73",  # PancakeSwap V2
        "0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",  # PancakeSwap V3
    ]),
    "avalanche": _chain("Avalanche", 43114, 2, "https://api.avax.network/ext/bc/C/rpc", [
        "0x9Ad6C38BE94206cA50bb0d90783181662f0Cfa10",  # TraderJoe
    ]),
    "fantom": _chain("Fantom", 250, 1, "https://rpc.ftm.tools", [
        "0x152eE697f2E276fA89E96742e9bB9aB1F2E61bE3",  # SpookySwap
    ]),
    "gnosis": _chain("Gnosis Chain", 100, 5, "https://rpc.gnosischain.com", [
        "0xA818b4F111Ccac7AA31D0BCc0806d64F2E0737D7",  # HoneySwap
    ]),
    "celo": _chain("Celo", 42220, 5, "https://forno.celo.org", [
        "0x62d5b84bE28a183aBB507E125B384122D2C25fAE",  # Ubeswap
    ]),
    "moonbeam": _chain("Moonbeam", 1284, 12, "https://rpc.api.moonbeam.network", [
        "0x19B85ae92947E0725d5265fFB3389e7E4F191FDa",  # StellaSwap
    ]),
}

CHAIN_ALIASES = {
    "eth": "ethereum",
    "matic": "polygon",
    "arb": "arbitrum",
    "op": "optimism",
    "bnb": "bsc",
    "avax": "avalanche",
    "ftm": "fantom",
    "xdai": "gnosis",
}


def chain_key(chain: str) -> str:
    key = (chain or "").strip().lower()
    return CHAIN_ALIASES.get(key, key)


def get_chain_config(chain: str) -> Optional[Dict[str, Any]]:
    return CHAINS.get(chain_key(chain))


def rpc_env_var(chain: str) -> str:
    return "WEB3_PROVIDER_" + chain_key(chain).upper().replace("-", "_")


def estimate_blocks_for_window(chain: str, window_minutes: int) -> int:
    cfg = get_chain_config(chain)
    block_time = cfg["block_time"] if cfg else DEFAULT_BLOCK_TIME
    if not cfg:
        print(f"[CHAINS] unknown chain {chain!r}; assuming {DEFAULT_BLOCK_TIME}s blocks")
    return math.floor((window_minutes * 60) / block_time)


def resolve_rpc_url(chain: str, rpc_url: Optional[str] = None) -> str:
    """Explicit rpc_url > WEB3_PROVIDER_<CHAIN> env > registry default."""
    candidates = [
        rpc_url,
        os.getenv(rpc_env_var(chain)),
        (get_chain_config(chain) or {}).get("default_rpc"),
    ]
    for rpc in candidates:
        rpc = (rpc or "").strip().rstrip("\r")
        if rpc and rpc not in {"https://", "http://"}:
            return rpc
    raise RpcConfigError(f"No RPC endpoint available for chain: {chain}. Please provide rpc_url parameter.")


def make_web3(rpc_url: str, chain: str) -> Web3:
    print(f"[CHAINS] HTTPProvider -> {rpc_url}")
    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": RPC_TIMEOUT_SECONDS}))

    cfg = get_chain_config(chain)
    if cfg and cfg["chainid"] in POA_CHAIN_IDS:
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        print(f"[CHAINS] POA middleware injected (ExtraDataToPOAMiddleware) for {chain_key(chain)}")
    return w3


def resolve_block_range(w3: Web3, chain: str, window_minutes: int) -> Tuple[int, int]:
    """[from_block, to_block] covering roughly the last ``window_minutes`` up to the live head."""
    head = int(w3.eth.block_number)
    blocks = estimate_blocks_for_window(chain, window_minutes)
    from_block = max(0, head - blocks)
    print(f"[CHAINS] block range chain={chain_key(chain)} head={head} blocks={blocks} -> [{from_block}, {head}]")
    return from_block, head


__all__ = [
    "CHAINS", "CHAIN_ALIASES", "DEFAULT_BLOCK_TIME", "RpcConfigError", "chain_key", "get_chain_config",
    "estimate_blocks_for_window", "resolve_rpc_url", "make_web3", "resolve_block_range",
]
