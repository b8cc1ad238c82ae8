"""
Recover a private key from an exported, transfer-code protected blob.
- PRIVATE_KEY_ENCRYPTED: base64 blob from the wallet export
- the transfer code is asked for interactively
The blob is XOR'd with the code, then 32-byte windows are tried until one
derives WALLET_ADDRESS.
"""

import base64
import binascii
import getpass
import os
import sys
from typing import List, Optional

from ..keys import eth_address
from .common import setup_logging, usage


def xor_decrypt(data: bytes, password: str) -> bytes:
    key = password.encode("utf-8")
    return bytes(b ^ key[i % len(key)] for i, b in enumerate(data))


def key_candidates(hex_data: str) -> List[str]:
    """32-byte windows, most likely first: head, tail, middle, every 16-byte step, reversed, fixed offsets."""
    n = len(hex_data)
    found: List[str] = [hex_data[:64], hex_data[-64:]]
    middle = (n - 64) // 2
    found.append(hex_data[middle:middle + 64])
    found.extend(hex_data[i:i + 64] for i in range(0, n - 63, 32))
    found.append(hex_data[::-1][:64])
    if n >= 96:
        found.append(hex_data[32:96])
    if n >= 128:
        found.append(hex_data[64:128])

    out: List[str] = []
    for c in found:
        if len(c) == 64 and c not in out:
            try:
                int(c, 16)
            except ValueError:
                continue
            out.append(c)
    return out


def find_key(candidates: List[str], wallet_address: str) -> Optional[str]:
    """Candidate whose derived address matches the wallet (0x… or eth|…)."""
    target = wallet_address.split("|")[-1].lower().removeprefix("0x")
    for i, c in enumerate(candidates, 1):
        print(f"[{i}/{len(candidates)}] Testing candidate {i}...")
        try:
            if eth_address(c)[2:].lower() == target:
                return c
        except ValueError:
            continue
    return None


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    encrypted = os.getenv("PRIVATE_KEY_ENCRYPTED")
    wallet = os.getenv("WALLET_ADDRESS")
    if not encrypted:
        usage("No PRIVATE_KEY_ENCRYPTED found in .env\n"
              "Add your encrypted private key as PRIVATE_KEY_ENCRYPTED=<base64>")
    if not wallet:
        usage("WALLET_ADDRESS environment variable is required to verify the recovered key")

    try:
        data = base64.b64decode(encrypted, validate=True)
    except (binascii.Error, ValueError):
        usage("Failed to decode PRIVATE_KEY_ENCRYPTED as base64")
    print(f"Encrypted key length: {len(encrypted)} characters ({len(data)} bytes)")

    password = getpass.getpass("Transfer code: ")
    if not password:
        usage("Password is required")

    candidates = key_candidates(xor_decrypt(data, password).hex())
    print(f"Total candidates to test: {len(candidates)}")
    key = find_key(candidates, wallet)
    if key is None:
        print("Could not find a private key matching WALLET_ADDRESS; "
              "the transfer code or export format may be different.", file=sys.stderr)
        sys.exit(1)

    print("\nRecovered a key matching WALLET_ADDRESS.")
    print("Add it to your .env file as:")
    print(f"PRIVATE_KEY={key}")


if __name__ == "__main__":
    main()
