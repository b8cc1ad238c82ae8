"""
Wallet address / private key normalisation and GalaChain payload signing.

GalaChain verifies a secp256k1 signature over keccak256 of the payload
serialised with sorted keys, `signature` and `trace` excluded.
"""

import base64
import json
import re
from copy import deepcopy
from typing import Any, Dict

from coincurve import PrivateKey
from eth_utils import keccak

_HEX_KEY = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")
_HEX_ADDR = re.compile(r"^0[xX][0-9a-fA-F]{40}$")


# ---------- addresses & keys ----------
def resolve_gala_address(address: str, prefix: str = "eth") -> str:
    """
    Map a wallet address to the exchange's `prefix|body` account id.
    - already namespaced (contains '|'): unchanged
    - 0x + 40 hex chars: `eth|<hex as given>`
    - anything else: unchanged
    """
    if "|" in address:
        return address
    if _HEX_ADDR.match(address):
        return f"{prefix}|{address[2:]}"
    return address


def normalise_private_key(private_key: str) -> str:
    """Return the key as 0x + 64 hex chars. The key itself never appears in errors."""
    key = private_key.strip()
    if not _HEX_KEY.match(key):
        raise ValueError("PRIVATE_KEY must be a 64 character hex string optionally prefixed with 0x")
    return key if key.startswith("0x") else f"0x{key}"


def _private_key(private_key: str) -> PrivateKey:
    return PrivateKey.from_hex(normalise_private_key(private_key)[2:])


def signer_public_key(private_key: str) -> str:
    """Base64 of the 33-byte compressed public key (the `signerPublicKey` field)."""
    return base64.b64encode(_private_key(private_key).public_key.format(compressed=True)).decode()


def eth_address(private_key: str) -> str:
    """0x-address of the key: last 20 bytes of keccak256(uncompressed pubkey without 0x04)."""
    raw = _private_key(private_key).public_key.format(compressed=False)[1:]
    return "0x" + keccak(raw)[-20:].hex()


# ---------- signing ----------
def canonical(obj: Any) -> str:
    """Stable, compact JSON with keys sorted and signature/trace removed."""
    def strip(o):
        if isinstance(o, dict):
            return {k: strip(v) for k, v in o.items() if k not in ("signature", "trace")}
        if isinstance(o, list):
            return [strip(x) for x in o]
        return o
    clean = strip(obj)
    return json.dumps(clean, separators=(",", ":"), sort_keys=True)


def payload_digest(payload: Dict[str, Any]) -> bytes:
    return keccak(canonical(payload).encode("utf-8"))


def sign_payload(payload: Dict[str, Any], private_key: str) -> Dict[str, Any]:
    """Copy of `payload` with a base64 DER (low-s) signature attached."""
    pk = _private_key(private_key)
    der = pk.sign(payload_digest(payload), hasher=None)
    signed = deepcopy(payload)
    signed["signature"] = base64.b64encode(der).decode()
    return signed
