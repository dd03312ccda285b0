import pytest

from marketwatch.chains import get_chain_config
from marketwatch.core import enrich
from marketwatch.core.detect import build_request, detect_new_pairs
from marketwatch.core.enrich import EnrichOptions
from marketwatch.core.models import DetectRequest
from marketwatch.utils.cache import TTLCache
from tests.fakes import (
    FakeEth, FakeWeb3, addr, fake_factory, mint_transfer_log, pair_created_log, pool_created_log,
    transfer_log, v2_mint_log, v3_mint_log,
)

FACTORY_V2 = addr(0xF2)
FACTORY_V3 = addr(0xF3)
WETH = addr(0x1001)
USDC = addr(0x1002)
PAIR = addr(0xA1)
POOL = addr(0xB1)
LP_A, LP_B = addr(0xAAA), addr(0xBBB)
HEAD = 10_000
RPC = "http://node.local:8545"
FAST = EnrichOptions(pool_delay=0, token_delay=0)


def _eth():
    return FakeEth(
        head=HEAD,
        tokens={
            WETH: {"name": "Wrapped Ether", "symbol": "WETH", "decimals": 18},
            USDC: {"name": "USD Coin", "symbol": "USDC", "decimals": 6},
        },
        logs=[
            pair_created_log(FACTORY_V2, WETH, USDC, PAIR, block=9_800),
            v2_mint_log(PAIR, LP_A, 2 * 10**18, 5_000 * 10**6, block=9_801),
            mint_transfer_log(PAIR, LP_A, 100, block=9_801),
            transfer_log(PAIR, LP_A, LP_B, 40, block=9_900),
            pool_created_log(FACTORY_V3, USDC, WETH, 500, 10, POOL, block=9_850),
        ],
    )


def _request(**overrides):
    base = dict(chain="ethereum", factories=(FACTORY_V2, FACTORY_V3), window_minutes=60, rpc_url=RPC)
    base.update(overrides)
    return DetectRequest(**base)


def test_end_to_end_result_shape():
    w3 = FakeWeb3(_eth())

    result = detect_new_pairs(_request(), web3_factory=fake_factory(w3), options=FAST)
    out = result.to_dict()

    assert result.success
    assert (out["from_block"], out["to_block"]) == (HEAD - 300, HEAD)
    assert out["total_pairs_found"] == 2
    assert out["rpc_info"] == f"Using custom RPC: {RPC}"

    v2, v3 = out["pairs"]
    assert v2["pair_address"] == PAIR
    assert v2["pool_type"] == "v2"
    assert v2["tokens"] == [WETH, USDC]
    assert v2["init_liquidity"] == "2.00 WETH / 5000.00 USDC"
    assert v2["top_holders"] == [LP_A, LP_B]
    assert v2["created_at"].endswith("Z")
    assert "fee" not in v2

    assert v3["pair_address"] == POOL
    assert v3["fee"] == "500" and v3["tick_spacing"] == 10
    assert v3["init_liquidity"] == "No liquidity"
    assert v3["top_holders"] == []


def test_v3_pool_with_mint_formats_in_emitted_token_order():
    eth = _eth()
    eth.logs.append(v3_mint_log(POOL, LP_A, 1_000 * 10**6, 10**17, block=9_852))

    result = detect_new_pairs(_request(), web3_factory=fake_factory(FakeWeb3(eth)), options=FAST)

    assert result.pairs[1].init_liquidity == "1000.00 USDC / 0.10 WETH"


def test_second_identical_request_is_served_from_cache():
    eth = _eth()
    cache = TTLCache(default_ttl=60)
    factory = fake_factory(FakeWeb3(eth))

    first = detect_new_pairs(_request(), cache=cache, web3_factory=factory, options=FAST)
    queries = len(eth.log_queries())
    contracts = len([c for c in eth.calls if c[0] == "contract"])

    second = detect_new_pairs(
        _request(factories=(FACTORY_V3, FACTORY_V2)), cache=cache, web3_factory=factory, options=FAST
    )

    assert second is first
    assert second.to_dict() == first.to_dict()
    assert len(eth.log_queries()) == queries
    assert len([c for c in eth.calls if c[0] == "contract"]) == contracts


def test_cache_miss_after_head_moves():
    eth = _eth()
    cache = TTLCache(default_ttl=60)
    factory = fake_factory(FakeWeb3(eth))
    detect_new_pairs(_request(), cache=cache, web3_factory=factory, options=FAST)
    queries = len(eth.log_queries())

    eth.head += 1
    detect_new_pairs(_request(), cache=cache, web3_factory=factory, options=FAST)

    assert len(eth.log_queries()) > queries
    assert len(cache) == 2


def test_failing_factory_keeps_pools_from_other_factories():
    eth = _eth()
    eth.failing_addresses.add(FACTORY_V2.lower())

    result = detect_new_pairs(_request(), web3_factory=fake_factory(FakeWeb3(eth)), options=FAST)

    assert result.success
    assert [p.record.pool_address for p in result.pairs] == [POOL]


def test_duplicate_pools_across_factories_are_reported_once():
    eth = _eth()
    eth.logs.append(pair_created_log(FACTORY_V3, WETH, USDC, PAIR, block=9_990))

    result = detect_new_pairs(_request(), web3_factory=fake_factory(FakeWeb3(eth)), options=FAST)

    assert [p.record.pool_address for p in result.pairs] == [PAIR, POOL]
    assert result.pairs[0].record.factory == FACTORY_V2


def test_enrichment_failure_degrades_pool_instead_of_dropping_it(monkeypatch: pytest.MonkeyPatch):
    def boom(*args, **kwargs):
        raise RuntimeError("node exploded")

    monkeypatch.setattr(enrich, "get_initial_liquidity", boom)

    result = detect_new_pairs(_request(), web3_factory=fake_factory(FakeWeb3(_eth())), options=FAST)

    assert result.success
    assert len(result.pairs) == 2
    assert all(p.init_liquidity == "Unable to fetch" and p.top_holders == () for p in result.pairs)


def test_head_block_failure_is_a_structured_failure():
    eth = _eth()
    eth.head = ConnectionError("connection refused")

    result = detect_new_pairs(_request(), web3_factory=fake_factory(FakeWeb3(eth)), options=FAST)

    assert not result.success
    assert "connection refused" in result.error
    assert result.to_dict() == {"success": False, "chain": "ethereum", "window_minutes": 60, "error": result.error}


def test_unknown_chain_without_rpc_is_a_config_failure(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("WEB3_PROVIDER_MYSTERYCHAIN", raising=False)
    factory = fake_factory(FakeWeb3(_eth()))

    result = detect_new_pairs(_request(chain="mysterychain", rpc_url=None), web3_factory=factory, options=FAST)

    assert not result.success
    assert "mysterychain" in result.error
    assert factory.seen == []


def test_unknown_chain_with_rpc_uses_12_second_blocks():
    result = detect_new_pairs(
        _request(chain="mysterychain", window_minutes=10), web3_factory=fake_factory(FakeWeb3(_eth())), options=FAST
    )
    assert result.success
    assert result.from_block == HEAD - 50


@pytest.mark.parametrize("overrides", [
    {"window_minutes": 0},
    {"window_minutes": 1441},
    {"factories": ("0x1234",)},
    {"chain": ""},
])
def test_invalid_input_is_rejected_before_any_rpc(overrides):
    factory = fake_factory(FakeWeb3(_eth()))
    result = detect_new_pairs(_request(**overrides), web3_factory=factory, options=FAST)
    assert not result.success
    assert result.error
    assert factory.seen == []


def test_build_request_normalizes_inputs():
    req = build_request("ETH", f" {FACTORY_V2.lower()} ,,{FACTORY_V3},{FACTORY_V2}", "15", "  ")
    assert req == DetectRequest(chain="ethereum", factories=(FACTORY_V2, FACTORY_V3), window_minutes=15, rpc_url=None)


def test_build_request_falls_back_to_common_factories():
    req = build_request("base", "", 5)
    assert req.factories == tuple(get_chain_config("base")["common_factories"])
    assert len(req.factories) == 2
    with pytest.raises(ValueError):
        build_request("mysterychain", [], 5)
