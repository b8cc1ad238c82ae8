"""Quote an exact-input swap on the DEX and value both sides in USD (CoinGecko).

Usage: gswap-quote <amount> [givingToken] [receivingToken]
"""

import os
import sys
from decimal import Decimal
from typing import List, Optional

from ..amounts import format_number, normalise_amount, parse_positive_amount
from ..api import ApiClient
from ..config import GALA_TOKEN, WBTC_TOKEN, load_endpoints
from ..dex import DexClient, token_symbol
from ..errors import ApiError
from ..prices import coingecko_usd
from .common import credentials, fail, setup_logging, usage


def _usd_suffix(value: Optional[Decimal]) -> str:
    return f" (~${format_number(value, 2, 2)})" if value is not None else ""


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    args = sys.argv[1:] if argv is None else argv
    if not args:
        usage("Usage: gswap-quote <amount> [givingToken] [receivingToken]")
    try:
        amount = parse_positive_amount(args[0])
    except ValueError:
        usage("Quoted amount must be a positive number")

    giving = args[1] if len(args) > 1 else os.getenv("GALA_QUOTE_GIVING") or GALA_TOKEN
    receiving = args[2] if len(args) > 2 else os.getenv("GALA_QUOTE_RECEIVING") or WBTC_TOKEN
    key, _ = credentials()

    endpoints = load_endpoints()
    dex = DexClient(endpoints, key)
    g_sym, r_sym = token_symbol(giving), token_symbol(receiving)
    print(f"Quoting {normalise_amount(amount)} {g_sym} -> {r_sym}")
    try:
        q = dex.quote_exact_input(giving, receiving, amount)
    except ApiError as e:
        fail(e)

    gecko = ApiClient(endpoints.coingecko, endpoints.timeout)
    giving_usd = coingecko_usd(gecko, g_sym)
    receiving_usd = coingecko_usd(gecko, r_sym)
    input_usd = giving_usd * amount if giving_usd is not None else None
    output_usd = receiving_usd * q.amount_out if receiving_usd is not None else None

    print("-------------------------------------")
    print(f"Input Amount : {normalise_amount(amount)} {g_sym}{_usd_suffix(input_usd)}")
    print(f"Output Amount: {normalise_amount(q.amount_out)} {r_sym}{_usd_suffix(output_usd)}")
    print(f"Price Impact : {q.price_impact:.6f}")
    print(f"Fee Tier     : {q.fee_tier}")
    print(f"Quote ID     : {q.quote_id or 'n/a'}")
    print("-------------------------------------")
    if input_usd is None or output_usd is None:
        print("Unable to compute USD value for one or both tokens. "
              "Configure COINGECKO_<SYMBOL>_ID or extend the symbol map.")


if __name__ == "__main__":
    main()
