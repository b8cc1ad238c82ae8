"""USD reference prices: GalaSwap token metadata and CoinGecko."""

import logging
import os
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Mapping, Optional

from .amounts import d
from .api import ApiClient
from .errors import ApiError

log = logging.getLogger("gswap.prices")

COINGECKO_IDS = {
    "GALA": "gala",
    "GWETH": "ethereum",
    "GWBTC": "bitcoin",
    "WETH": "ethereum",
    "WBTC": "wrapped-bitcoin",
}


def get_tokens(client: ApiClient, symbols: Iterable[str]) -> Dict[str, Any]:
    """/v1/tokens metadata keyed by upper-case symbol."""
    js = client.get("/v1/tokens", params={"symbols": ",".join(symbols)})
    tokens = js.get("tokens", []) if isinstance(js, dict) else []
    return {str(t.get("symbol", "")).upper(): t for t in tokens if isinstance(t, dict)}


def usd_ref(meta: Optional[Dict[str, Any]]) -> Optional[Decimal]:
    px = ((meta or {}).get("currentPrices") or {}).get("usd")
    if px is None:
        return None
    try:
        return d(px)
    except InvalidOperation:
        return None


def fetch_token_usd_prices(client: ApiClient, symbols: Iterable[str]) -> Dict[str, Optional[Decimal]]:
    """USD price per symbol; None where the token is unknown or has no price."""
    wanted = [s.upper() for s in symbols]
    toks = get_tokens(client, wanted)
    return {s: usd_ref(toks.get(s)) for s in wanted}


def coingecko_id(symbol: str, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    e = os.environ if env is None else env
    return e.get(f"COINGECKO_{symbol.upper()}_ID") or COINGECKO_IDS.get(symbol.upper())


def coingecko_usd(client: ApiClient, symbol: str, env: Optional[Mapping[str, str]] = None) -> Optional[Decimal]:
    """USD price from CoinGecko simple/price; None when unmapped or on failure."""
    coin_id = coingecko_id(symbol, env)
    if not coin_id:
        return None
    try:
        js = client.get("/api/v3/simple/price", params={"ids": coin_id, "vs_currencies": "usd"})
    except ApiError as e:
        log.warning("Failed to fetch USD price for %s: %s", symbol, e)
        return None
    usd = (js.get(coin_id) or {}).get("usd") if isinstance(js, dict) else None
    if isinstance(usd, bool) or not isinstance(usd, (int, float, str)):
        return None
    try:
        return d(usd)
    except InvalidOperation:
        return None
