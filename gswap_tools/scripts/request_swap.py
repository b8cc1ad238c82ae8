"""Post a signed token swap request (maker offer) and append it to the swap request log.

Usage: gswap-request-swap <givingAmount> <receivingAmount> <givingToken> <receivingToken> [uses]
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..activity import JsonLinesLog, iso_now
from ..api import ApiClient
from ..config import load_endpoints
from ..dex import parse_token_class
from ..errors import ApiError
from ..keys import sign_payload, signer_public_key
from .common import credentials, fail, print_json, setup_logging, unique_key, usage

USAGE = "Usage: gswap-request-swap <givingAmount> <receivingAmount> <givingToken> <receivingToken> [uses]"


def swap_log_path() -> Path:
    raw = os.getenv("GALA_CONNECT_SWAP_LOG") or os.getenv("GALA_SWAP_REQUEST_LOG")
    return Path(raw) if raw else Path.home() / "galaconnect-swaps.log"


def build_offer(giving_amount: str, receiving_amount: str, giving_token: str, receiving_token: str,
                uses: str = "1") -> Dict[str, Any]:
    """offered/wanted legs; quantities are passed through exactly as given."""
    return {
        "offered": [{"quantity": giving_amount, "tokenInstance": parse_token_class(giving_token)}],
        "wanted": [{"quantity": receiving_amount, "tokenInstance": parse_token_class(receiving_token)}],
        "uses": uses,
    }


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 4:
        usage(USAGE)
    giving_amount, receiving_amount, giving_token, receiving_token = args[:4]
    uses = args[4] if len(args) > 4 else "1"

    key, wallet = credentials()
    try:
        body = build_offer(giving_amount, receiving_amount, giving_token, receiving_token, uses)
    except ApiError as e:
        usage(str(e))
    body["uniqueKey"] = unique_key()
    body["signerPublicKey"] = signer_public_key(key)

    client = ApiClient(load_endpoints().api_base)
    endpoint = client.url("/v1/RequestTokenSwap")
    try:
        data = client.post("/v1/RequestTokenSwap", sign_payload(body, key), wallet_address=wallet)
    except ApiError as e:
        fail(e)

    print("Swap request submitted:")
    print_json(data)

    path = swap_log_path()
    try:
        JsonLinesLog(path).append({
            "timestamp": iso_now(),
            "endpoint": endpoint,
            "walletAddress": wallet,
            "payload": body,
            "response": data,
        })
    except OSError as e:
        print(f"Failed to write swap request log {path}: {e}", file=sys.stderr)
        return
    print(f"Saved swap request log to {path}")


if __name__ == "__main__":
    main()
