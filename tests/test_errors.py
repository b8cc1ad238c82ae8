"""Tests for the tagged error shape."""
import requests

from gswap_tools.errors import (
    TransportError,
    UnknownError,
    ValidationError,
    classify,
    decode_error_key,
    describe,
)


class Resp:
    def __init__(self, status, body):
        self.status_code = status
        self._body = body
        self.text = body if isinstance(body, str) else ""

    def json(self):
        if isinstance(self._body, str):
            raise ValueError("not json")
        return self._body


def test_decode_error_key():
    assert decode_error_key({"error": "insufficient funds"}) == "INSUFFICIENT_FUNDS"
    assert decode_error_key({"validationError": {"name": "dto_invalid"}}) == "DTO_INVALID"
    assert decode_error_key("Bad Request") == "BAD_REQUEST"
    assert decode_error_key(None) == ""


def test_classify_http_error():
    exc = requests.HTTPError("boom", response=Resp(400, {"error": "BAD_SIGNATURE"}))
    err = classify(exc)
    assert isinstance(err, TransportError)
    assert err.status == 400
    assert err.code == "BAD_SIGNATURE"
    assert err.diagnostics()["body"] == {"error": "BAD_SIGNATURE"}


def test_classify_other_shapes():
    assert isinstance(classify(requests.ConnectionError("down")), TransportError)
    assert classify(requests.ConnectionError("down")).status is None
    assert isinstance(classify(ValueError("bad amount")), ValidationError)
    unknown = classify(KeyError("x"))
    assert isinstance(unknown, UnknownError)
    same = ValidationError("v")
    assert classify(same) is same


def test_describe_transport_error():
    headline, body = describe(TransportError(500, {"error": "oops"}))
    assert headline == "Request failed with status 500."
    assert '"error": "oops"' in body


def test_describe_plain_error():
    headline, body = describe(RuntimeError("socket closed"))
    assert headline == "socket closed"
    assert body == ""
