"""Ask the API what fee a swap request would cost (no signature needed).

Usage: gswap-check-fee <givingAmount> <receivingAmount> <givingToken> <receivingToken> [uses]
"""

import os
import sys
from typing import List, Optional

from ..api import ApiClient
from ..config import load_endpoints
from ..errors import ApiError
from .common import fail, print_json, setup_logging, usage
from .request_swap import build_offer


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 4:
        usage("Usage: gswap-check-fee <givingAmount> <receivingAmount> <givingToken> <receivingToken> [uses]")
    giving_amount, receiving_amount, giving_token, receiving_token = args[:4]
    uses = args[4] if len(args) > 4 else "1"

    try:
        body = build_offer(giving_amount, receiving_amount, giving_token, receiving_token, uses)
    except ApiError as e:
        usage(str(e))

    client = ApiClient(load_endpoints().api_base)
    try:
        data = client.post("/v1/RequestTokenSwap/fee", body, wallet_address=os.getenv("WALLET_ADDRESS") or None)
    except ApiError as e:
        fail(e)
    print("Fee response:")
    print_json(data)


if __name__ == "__main__":
    main()
