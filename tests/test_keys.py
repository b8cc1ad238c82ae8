"""Tests for address/key normalisation and payload signing."""
import base64
import json

import pytest
from coincurve import PublicKey
from eth_utils import keccak

from gswap_tools.keys import (
    canonical,
    eth_address,
    normalise_private_key,
    resolve_gala_address,
    sign_payload,
    signer_public_key,
)
from tests.conftest import KEY_ONE, KEY_ONE_ADDRESS


def test_namespaced_address_unchanged():
    assert resolve_gala_address("client|abc123") == "client|abc123"
    assert resolve_gala_address("eth|AbCdEf0123456789abcdef0123456789ABCDEF01") == \
        "eth|AbCdEf0123456789abcdef0123456789ABCDEF01"


def test_hex_address_gets_eth_prefix_case_preserved():
    raw = "0xAbCdEf0123456789abcdef0123456789ABCDEF01"
    assert resolve_gala_address(raw) == "eth|AbCdEf0123456789abcdef0123456789ABCDEF01"


def test_other_shapes_unchanged():
    assert resolve_gala_address("0x1234") == "0x1234"
    assert resolve_gala_address("client_abc") == "client_abc"


def test_private_key_with_and_without_prefix():
    hex64 = "ab" * 32
    assert normalise_private_key(hex64) == "0x" + hex64
    assert normalise_private_key("0x" + hex64) == "0x" + hex64


@pytest.mark.parametrize("bad", ["ab" * 31, "ab" * 33, "zz" * 32, "0x", "0x" + "ab" * 31 + "g1", ""])
def test_private_key_rejects_other_shapes(bad):
    with pytest.raises(ValueError) as exc:
        normalise_private_key(bad)
    assert "64 character hex" in str(exc.value)
    if len(bad) > 8:
        assert bad not in str(exc.value)


def test_eth_address_of_known_key():
    assert eth_address(KEY_ONE) == KEY_ONE_ADDRESS


def test_signer_public_key_is_compressed():
    raw = base64.b64decode(signer_public_key(KEY_ONE))
    assert len(raw) == 33
    assert raw[0] in (2, 3)


def test_canonical_sorts_and_strips_signature():
    obj = {"b": 1, "a": {"z": [1, {"signature": "x", "y": 2}], "trace": "t"}, "signature": "s"}
    assert canonical(obj) == '{"a":{"z":[1,{"y":2}]},"b":1}'


def test_sign_payload_verifies_against_public_key():
    payload = {"uniqueKey": "galaconnect-operation-1", "quantity": "10", "authority": "eth|abc"}
    signed = sign_payload(payload, KEY_ONE)
    assert "signature" not in payload
    digest = keccak(canonical(payload).encode())
    pub = PublicKey(base64.b64decode(signer_public_key(KEY_ONE)))
    assert pub.verify(base64.b64decode(signed["signature"]), digest, hasher=None)


def test_signature_ignores_existing_signature_field():
    payload = {"a": "1"}
    first = sign_payload(payload, KEY_ONE)
    again = sign_payload(first, KEY_ONE)
    assert first["signature"] == again["signature"]
    assert json.loads(canonical(again)) == {"a": "1"}
