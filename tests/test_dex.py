"""Tests for the REST DEX client."""
import base64
from decimal import Decimal

import pytest
from coincurve import PublicKey

from gswap_tools.config import GALA_TOKEN, WBTC_TOKEN, Endpoints
from gswap_tools.dex import (
    DexClient,
    PendingTransaction,
    backend_token_key,
    parse_token_class,
    sort_tokens,
)
from gswap_tools.errors import TransportError, UnknownError, ValidationError
from gswap_tools.keys import payload_digest
from tests.conftest import KEY_ONE, FakeApi

POOL_PATH = "/api/asset/dexv3-contract/GetPoolData"


def make_client(backend=None, gateway=None, bundler=None, key=KEY_ONE):
    return DexClient(
        Endpoints(),
        private_key=key,
        backend=backend or FakeApi(),
        gateway=gateway or FakeApi(),
        bundler=bundler or FakeApi(),
    )


def test_parse_token_class():
    assert parse_token_class(GALA_TOKEN) == {
        "collection": "GALA", "category": "Unit", "type": "none", "additionalKey": "none", "instance": "0",
    }
    assert "instance" not in parse_token_class(GALA_TOKEN, with_instance=False)
    with pytest.raises(ValidationError):
        parse_token_class("GALA|Unit")


def test_token_helpers():
    assert backend_token_key(GALA_TOKEN) == "GALA$Unit$none$none"
    assert sort_tokens(WBTC_TOKEN, GALA_TOKEN) == (GALA_TOKEN, WBTC_TOKEN)


def test_spot_price_squares_and_inverts():
    assert DexClient.calculate_spot_price(GALA_TOKEN, WBTC_TOKEN, "0.002") == Decimal("0.000004")
    assert DexClient.calculate_spot_price(WBTC_TOKEN, GALA_TOKEN, "0.002") == Decimal("250000")
    assert DexClient.calculate_spot_price(WBTC_TOKEN, GALA_TOKEN, "0") == 0


def test_fetch_spot_price_reciprocal():
    gateway = FakeApi({POOL_PATH: {"Status": 1, "Data": {"sqrtPrice": "0.002"}}})
    info = make_client(gateway=gateway).fetch_spot_price(GALA_TOKEN, WBTC_TOKEN, 10000)
    assert info.quote_per_base == Decimal("0.000004")
    assert info.base_per_quote == Decimal("250000")
    assert abs(info.quote_per_base * info.base_per_quote - 1) < Decimal("1e-30")
    body = gateway.calls[0][2]
    assert body["token0"]["collection"] == "GALA"
    assert body["fee"] == 10000


def test_fetch_spot_price_falls_back_to_reverse_order():
    answers = [TransportError(500, "down"), {"Status": 1, "Data": {"sqrtPrice": "0.002"}}]

    def pool(_body):
        answer = answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    info = make_client(gateway=FakeApi({POOL_PATH: pool})).fetch_spot_price(GALA_TOKEN, WBTC_TOKEN, 10000)
    assert info.quote_per_base == Decimal("0.000004")
    assert info.base_per_quote == Decimal("250000")


def test_fetch_spot_price_gives_up():
    gateway = FakeApi({POOL_PATH: TransportError(404, "no pool")})
    with pytest.raises(UnknownError) as exc:
        make_client(gateway=gateway).fetch_spot_price(GALA_TOKEN, WBTC_TOKEN, 10000)
    assert "GALA/GWBTC" in str(exc.value)


def quote_route(outs):
    def route(params):
        out = outs.get(params["fee"])
        if out is None:
            return {"status": 400, "error": True, "message": "NO_POOL"}
        return {"status": 200, "error": False, "data": {
            "amountOut": f"-{out}", "currentSqrtPrice": "0.002", "newSqrtPrice": "0.0019", "fee": params["fee"],
        }}
    return route


def test_quote_with_fixed_fee():
    backend = FakeApi({"/v1/trade/quote": quote_route({10000: "0.0002"})})
    q = make_client(backend=backend).quote_exact_input(GALA_TOKEN, WBTC_TOKEN, "50", fee=10000)
    assert q.amount_out == Decimal("0.0002")
    assert q.fee_tier == 10000
    assert q.current_price == Decimal("0.000004")
    assert q.price_impact < 0
    params = backend.calls[0][2]
    assert params["tokenIn"] == "GALA$Unit$none$none"
    assert params["amountIn"] == "50"


def test_quote_picks_best_tier():
    backend = FakeApi({"/v1/trade/quote": quote_route({500: "0.00019", 3000: "0.00021"})})
    q = make_client(backend=backend).quote_exact_input(GALA_TOKEN, WBTC_TOKEN, "50")
    assert q.fee_tier == 3000
    assert q.amount_out == Decimal("0.00021")
    assert len(backend.calls) == 3


def test_quote_no_tier_raises_last_error():
    backend = FakeApi({"/v1/trade/quote": quote_route({})})
    with pytest.raises(TransportError):
        make_client(backend=backend).quote_exact_input(GALA_TOKEN, WBTC_TOKEN, "50")


def test_swap_submits_signed_payload():
    bundler = FakeApi({"/bundle": {"data": "tx-123"}})
    wallet = "eth|" + "ab" * 20
    pending = make_client(bundler=bundler).swap(GALA_TOKEN, WBTC_TOKEN, 10000, Decimal("5"), Decimal("0.000198"), wallet)
    assert pending == PendingTransaction("tx-123", GALA_TOKEN, WBTC_TOKEN)

    body = bundler.calls[0][2]
    assert body["method"] == "Swap"
    dto = body["signedDto"]
    assert dto["amount"] == "5"
    assert dto["amountOutMinimum"] == "-0.000198"
    assert dto["zeroForOne"] is True
    assert dto["recipient"] == wallet
    assert dto["uniqueKey"].startswith("galaswap-operation-")
    pub = PublicKey(base64.b64decode(dto["signerPublicKey"]))
    assert pub.verify(base64.b64decode(dto["signature"]), payload_digest(dto), hasher=None)


def test_swap_requires_key():
    with pytest.raises(ValidationError):
        make_client(key=None).swap(GALA_TOKEN, WBTC_TOKEN, 10000, "5", "0.1", "eth|abc")


def test_get_balances_defaults_missing_symbols():
    backend = FakeApi({"/user/assets": {"data": {"tokens": [
        {"symbol": "GALA", "quantity": "1234.5"}, {"symbol": "SILK", "quantity": "9"},
    ]}}})
    balances = make_client(backend=backend).get_balances("eth|abc", ["GALA", "gwbtc"])
    assert balances == {"GALA": Decimal("1234.5"), "GWBTC": Decimal(0)}


def status_route(statuses):
    def route(_params):
        return {"data": statuses.pop(0)}
    return route


def test_wait_polls_until_processed():
    bundler = FakeApi({"/transaction-status": status_route([
        {"status": "PENDING"}, {"status": "processed", "transactionHash": "0xfeed"},
    ])})
    delays = []
    result = make_client(bundler=bundler).wait(PendingTransaction("tx-1", GALA_TOKEN, WBTC_TOKEN), sleep=delays.append)
    assert result == {"txId": "tx-1", "transactionHash": "0xfeed", "status": "PROCESSED"}
    assert delays == [1.0]


def test_wait_failed_status_raises():
    bundler = FakeApi({"/transaction-status": status_route([{"status": "FAILED", "reason": "slippage"}])})
    with pytest.raises(TransportError) as exc:
        make_client(bundler=bundler).wait(PendingTransaction("tx-1", GALA_TOKEN, WBTC_TOKEN), sleep=lambda s: None)
    assert exc.value.body["reason"] == "slippage"


def test_wait_runs_out():
    bundler = FakeApi({"/transaction-status": lambda _p: {"data": {"status": "PENDING"}}})
    with pytest.raises(UnknownError):
        make_client(bundler=bundler).wait(
            PendingTransaction("tx-1", GALA_TOKEN, WBTC_TOKEN), attempts=3, sleep=lambda s: None)
