# cli.py
import argparse
import json
import os
import sys

print("[CLI] Booting...")

from dotenv import load_dotenv
_loaded = load_dotenv()
print(f"[CLI] .env loaded: {_loaded}")

try:
    from marketwatch import config
    from marketwatch.chains import CHAINS, rpc_env_var
    from marketwatch.core.detect import build_request, detect_new_pairs
    from marketwatch.utils.ratelimit import set_default_qps
    print("[CLI] Import detect_new_pairs: OK")
except Exception as e:
    print("[CLI] Import detect_new_pairs: FAIL ->", e)
    sys.exit(1)


def print_pretty(out: dict) -> None:
    print(f"✅ Chain={out['chain']}  window={out['window_minutes']}m  blocks=[{out['from_block']}, {out['to_block']}]")
    print(f"🔎 Found {out['total_pairs_found']} new pools")
    for p in out["pairs"]:
        fee = f" fee={p['fee']} tickSpacing={p['tick_spacing']}" if p.get("pool_type") == "v3" else ""
        print(f"\n🔹 {p['pool_type'].upper()} {p['pair_address']}{fee}")
        print(f"   tokens: {p['tokens'][0]} / {p['tokens'][1]}")
        print(f"   created: {p['created_at']} (block {p['block_number']})")
        print(f"   tx: {p['transaction_hash']}")
        print(f"   factory: {p['factory']}")
        print(f"   initial liquidity: {p['init_liquidity']}")
        holders = p.get("top_holders") or []
        print(f"   top holders: {', '.join(holders) if holders else 'n/a'}")
    print(f"\nℹ️ {out['rpc_info']}")


def main(argv=None) -> int:
    print("[CLI] Parsing arguments...")
    p = argparse.ArgumentParser(description="Fresh Market Watch CLI: list AMM pairs/pools created in the last N minutes")
    p.add_argument("--chain", default="ethereum", help=f"Chain key ({', '.join(CHAINS)})")
    p.add_argument("--factories", default="", help="Comma separated factory addresses (default: chain's common factories)")
    p.add_argument("--window", type=int, default=config.DEFAULT_WINDOW_MINUTES,
                   help=f"Time window in minutes ({config.MIN_WINDOW_MINUTES}-{config.MAX_WINDOW_MINUTES})")
    p.add_argument("--rpc-url", default=None, help="Custom RPC URL (default: $WEB3_PROVIDER_<CHAIN> or the chain default)")
    p.add_argument("--qps", type=float, default=config.RPC_QPS, help="Max factory queries per second")
    p.add_argument("--json", action="store_true", help="Print JSON only")
    args = p.parse_args(argv)
    print(f"[CLI] Args -> chain={args.chain} window={args.window} rpc_env={rpc_env_var(args.chain)} "
          f"custom_rpc={'yes' if args.rpc_url else 'no'} env_rpc={'yes' if os.getenv(rpc_env_var(args.chain)) else 'no'}")

    set_default_qps(args.qps)

    try:
        req = build_request(args.chain, args.factories, args.window, args.rpc_url)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2

    result = detect_new_pairs(req)
    out = result.to_dict()

    if args.json:
        print(json.dumps(out, indent=2, sort_keys=False, default=str))
        return 0 if result.success else 1

    if not result.success:
        print(f"❌ {result.error}", file=sys.stderr)
        return 1

    print_pretty(out)
    print("[CLI] Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
