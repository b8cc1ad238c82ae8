"""Terminate (cancel) one of your open swap requests.

Usage: gswap-terminate-swap <swapRequestId>
Swap request ids embed NUL separators; pass them either `base64:`-encoded or
with `\\u0000` style escapes (quoted, backslashes escaped).
"""

import base64
import binascii
import re
import sys
from typing import List, Optional

from ..api import ApiClient
from ..config import load_endpoints
from ..errors import ApiError
from ..keys import sign_payload, signer_public_key
from .common import credentials, fail, print_json, setup_logging, unique_key, usage

_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")


def decode_swap_request_id(raw: str) -> str:
    if not raw:
        return raw
    if raw.startswith("base64:"):
        return base64.b64decode(raw[len("base64:"):], validate=True).decode("utf-8")
    if "\\u" in raw:
        return _ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), raw)
    return raw


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    args = sys.argv[1:] if argv is None else argv
    if not args:
        usage("Usage: gswap-terminate-swap <swapRequestId>\n"
              '       (wrap the ID in quotes and escape backslashes, e.g. "\\u0000...")')

    try:
        swap_request_id = decode_swap_request_id(args[0])
    except (binascii.Error, UnicodeDecodeError):
        usage("Failed to decode base64: swap request id")
    key, wallet = credentials()
    body = {
        "swapRequestId": swap_request_id,
        "uniqueKey": unique_key(),
        "signerPublicKey": signer_public_key(key),
    }

    client = ApiClient(load_endpoints().api_base)
    try:
        data = client.post("/v1/TerminateTokenSwap", sign_payload(body, key), wallet_address=wallet)
    except ApiError as e:
        fail(e)
    print("Terminate swap submitted:")
    print_json(data)


if __name__ == "__main__":
    main()
