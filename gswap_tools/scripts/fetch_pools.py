"""List DEX pools that contain a base token (GALA_POOL_BASE, default GALA), biggest TVL first.

Usage: gswap-fetch-pools
"""

import os
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from ..amounts import d, format_fee, format_number, format_usd
from ..api import ApiClient
from ..config import load_endpoints
from ..errors import ApiError
from .common import fail, setup_logging


def page_limit(raw: Optional[str]) -> int:
    try:
        value = int(raw) if raw else 20
    except ValueError:
        return 20
    return 20 if value <= 0 else min(value, 20)


def fetch_all_pools(client: ApiClient, limit: int = 20) -> List[Dict[str, Any]]:
    pools: List[Dict[str, Any]] = []
    page = 1
    total = None
    while total is None or len(pools) < total:
        js = client.get("/explore/pools", params={"limit": limit, "page": page})
        data = (js or {}).get("data") or {}
        page_pools = data.get("pools") or []
        if not page_pools:
            break
        pools.extend(page_pools)
        total = data.get("count") or len(pools)
        page += 1
    return pools


def is_base_pool(pool: Dict[str, Any], base: str) -> bool:
    name = str(pool.get("poolName", "")).upper()
    return name.startswith(f"{base}/") or name.endswith(f"/{base}")


def tvl_key(pool: Dict[str, Any]) -> Decimal:
    try:
        value = d(pool.get("tvl") or 0)
    except InvalidOperation:
        return d(0)
    return value if value.is_finite() else d(0)


def display_pool(pool: Dict[str, Any]) -> None:
    print(f"\n{pool.get('poolName')} (fee {format_fee(pool.get('fee'))}%)")
    print(f"  token0Price: {format_number(pool.get('token0Price'), 4, 8)} ({pool.get('token0')})")
    print(f"  token1Price: {format_number(pool.get('token1Price'), 4, 8)} ({pool.get('token1')})")
    print(f"  TVL: {format_usd(pool.get('tvl'))} | 24h Volume: {format_usd(pool.get('volume1d'))}")
    print(f"  token0 TVL: {format_number(pool.get('token0Tvl'), 4, 6)} {pool.get('token0')}")
    print(f"  token1 TVL: {format_number(pool.get('token1Tvl'), 4, 6)} {pool.get('token1')}")


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    base = (os.getenv("GALA_POOL_BASE") or "GALA").upper()
    endpoints = load_endpoints()
    client = ApiClient(endpoints.dex_backend, endpoints.timeout)
    print(f"Fetching {base} pools from {client.base_url} (base symbol: {base})")

    try:
        pools = fetch_all_pools(client, page_limit(os.getenv("GALA_POOL_PAGE_LIMIT")))
    except ApiError as e:
        fail(e)

    matching = [p for p in pools if is_base_pool(p, base)]
    if not matching:
        print("No pools found for the specified base token.")
        return
    for pool in sorted(matching, key=tvl_key, reverse=True):
        display_pool(pool)


if __name__ == "__main__":
    main()
