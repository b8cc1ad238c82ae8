"""Transfer GALA to TRANSFER_RECIPIENT.

Usage: gswap-transfer <amount-in-gala>
"""

import sys
import time
from typing import Any, Dict, List, Optional

from ..amounts import normalise_amount, parse_positive_amount
from ..api import ApiClient
from ..config import ConfigError, GALA_TOKEN, load_endpoints, require_env
from ..dex import parse_token_class
from ..errors import ApiError
from ..keys import resolve_gala_address, sign_payload
from .common import credentials, fail, print_json, setup_logging, usage

TRANSFER_PATH = "/galachain/api/asset/token-contract/TransferToken"


def build_transfer(from_address: str, to_address: str, amount: Any, token: str = GALA_TOKEN) -> Dict[str, Any]:
    return {
        "uniqueKey": f"galaswap-operation-{int(time.time() * 1000)}",
        "from": from_address,
        "to": to_address,
        "tokenInstance": parse_token_class(token),
        "quantity": normalise_amount(amount),
    }


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    args = sys.argv[1:] if argv is None else argv
    if not args:
        usage("Usage: gswap-transfer <amount-in-gala>")
    try:
        amount = parse_positive_amount(args[0])
    except ValueError:
        usage("Amount must be a positive number")

    key, wallet = credentials()
    try:
        recipient = resolve_gala_address(require_env("TRANSFER_RECIPIENT"))
    except ConfigError as e:
        usage(str(e))

    payload = sign_payload(build_transfer(wallet, recipient, amount), key)
    client = ApiClient(load_endpoints().api_base)
    try:
        print_json(client.post(TRANSFER_PATH, payload, wallet_address=wallet))
    except ApiError as e:
        fail(e)


if __name__ == "__main__":
    main()
