import pytest

from marketwatch import chains
from marketwatch.chains import (
    CHAINS, RpcConfigError, estimate_blocks_for_window, get_chain_config, resolve_block_range, resolve_rpc_url,
)
from tests.fakes import FakeEth, FakeWeb3


@pytest.mark.parametrize("chain,window,expected", [
    ("ethereum", 60, 300),
    ("base", 15, 450),
    ("arbitrum", 1, 240),
    ("bsc", 1440, 28800),
])
def test_estimate_blocks_uses_chain_block_time(chain, window, expected):
    assert estimate_blocks_for_window(chain, window) == expected


def test_estimate_blocks_floors_partial_blocks(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setitem(CHAINS, "slowchain", {"name": "Slow", "chainid": 999, "block_time": 7,
                                              "default_rpc": "http://localhost:8545", "common_factories": []})
    assert estimate_blocks_for_window("slowchain", 1) == 8


def test_estimate_blocks_unknown_chain_falls_back_to_12_seconds():
    assert estimate_blocks_for_window("not-a-chain", 10) == 50
    assert estimate_blocks_for_window("not-a-chain", 1) == 5


def test_chain_lookup_is_case_insensitive_and_alias_aware():
    assert get_chain_config("ETH") is CHAINS["ethereum"]
    assert get_chain_config(" Base ") is CHAINS["base"]
    assert get_chain_config("nope") is None


def test_resolve_rpc_url_precedence(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("WEB3_PROVIDER_ETHEREUM", raising=False)
    assert resolve_rpc_url("ethereum") == CHAINS["ethereum"]["default_rpc"]

    monkeypatch.setenv("WEB3_PROVIDER_ETHEREUM", "https://env.example/rpc")
    assert resolve_rpc_url("eth") == "https://env.example/rpc"
    assert resolve_rpc_url("eth", "https://custom.example") == "https://custom.example"


def test_resolve_rpc_url_unknown_chain_without_rpc_names_the_chain(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("WEB3_PROVIDER_MYSTERY", raising=False)
    with pytest.raises(RpcConfigError) as exc:
        resolve_rpc_url("mystery")
    assert "mystery" in str(exc.value)
    assert resolve_rpc_url("mystery", "http://node:8545") == "http://node:8545"


def test_resolve_block_range_from_live_head():
    w3 = FakeWeb3(FakeEth(head=1_000))
    assert resolve_block_range(w3, "ethereum", 60) == (700, 1_000)


def test_resolve_block_range_never_goes_below_genesis():
    w3 = FakeWeb3(FakeEth(head=100))
    assert resolve_block_range(w3, "arbitrum", 60) == (0, 100)


def test_make_web3_injects_poa_middleware_only_for_poa_chains(monkeypatch: pytest.MonkeyPatch):
    injected = []

    class _Onion:
        def inject(self, mw, layer=None):
            injected.append((mw, layer))

    class _W3:
        HTTPProvider = staticmethod(lambda url, request_kwargs=None: ("provider", url))

        def __init__(self, provider):
            self.provider = provider
            self.middleware_onion = _Onion()

    monkeypatch.setattr(chains, "Web3", _W3)
    chains.make_web3("http://a", "ethereum")
    assert injected == []
    chains.make_web3("http://b", "bsc")
    assert injected == [(chains.ExtraDataToPOAMiddleware, 0)]
