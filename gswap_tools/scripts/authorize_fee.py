"""Authorize a GALA fee allowance on a channel (GALA_FEE_CHANNEL, default `asset`).

Usage: gswap-authorize-fee <amount>
"""

import os
import secrets
import sys
import time
from typing import Any, Dict, List, Optional

from ..amounts import normalise_amount, parse_positive_amount
from ..api import ApiClient
from ..config import load_endpoints
from ..errors import ApiError
from ..keys import sign_payload, signer_public_key
from .common import credentials, fail, print_json, setup_logging, usage


def build_fee_authorization(authority: str, amount: Any, private_key: str) -> Dict[str, Any]:
    body = {
        "uniqueKey": f"galaconnect-operation-{int(time.time() * 1000)}-{secrets.token_hex(4)}",
        "authority": authority,
        "quantity": normalise_amount(amount),
        "signerPublicKey": signer_public_key(private_key),
    }
    return sign_payload(body, private_key)


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    args = sys.argv[1:] if argv is None else argv
    if not args:
        usage("Usage: gswap-authorize-fee <amount>")
    try:
        amount = parse_positive_amount(args[0])
    except ValueError:
        usage("Fee amount must be a positive number")

    key, authority = credentials()
    channel = os.getenv("GALA_FEE_CHANNEL") or "asset"
    client = ApiClient(load_endpoints().api_base)
    try:
        data = client.post(f"/v1/channels/{channel}/AuthorizeFee",
                           build_fee_authorization(authority, amount, key), wallet_address=authority)
    except ApiError as e:
        fail(e)
    print("Fee authorization submitted")
    print_json(data)


if __name__ == "__main__":
    main()
