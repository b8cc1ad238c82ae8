"""Shared test fixtures: fake HTTP backends and a fake DEX client."""
import io
import threading
from decimal import Decimal

import pytest
from rich.console import Console

from gswap_tools.config import DashboardConfig
from gswap_tools.dex import PendingTransaction, PriceInfo, Quote
from gswap_tools.errors import TransportError

# secp256k1 private key 1; its address is well known
KEY_ONE = "0x" + "00" * 31 + "01"
KEY_ONE_ADDRESS = "0x7e5f4552091a69125d5dfcb7b8c2659029395bdf"


class FakeApi:
    """Stands in for ApiClient: routes are values, exceptions, or callables."""

    def __init__(self, routes=None, base_url="https://fake.example"):
        self.routes = dict(routes or {})
        self.base_url = base_url
        self.calls = []

    def url(self, path):
        return f"{self.base_url}/{path.lstrip('/')}"

    def _answer(self, method, path, payload):
        self.calls.append((method, path, payload))
        route = self.routes[path]
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(payload)
        return route

    def get(self, path, params=None):
        return self._answer("GET", path, params)

    def post(self, path, body, wallet_address=None):
        return self._answer("POST", path, body)


class FakeDex:
    """DEX double used by the dashboard tests."""

    def __init__(self):
        self.balances = {"GALA": Decimal("1000"), "GWBTC": Decimal("0.5")}
        self.price = PriceInfo(quote_per_base=Decimal("0.0000002"), base_per_quote=Decimal("5000000"))
        self.quote_out = Decimal("0.0002")
        self.balance_error = None
        self.price_error = None
        self.quote_error = None
        self.swap_error = None
        self.swaps = []
        self.wait_gate = None

    def get_balances(self, address, symbols, page_size=20):
        if self.balance_error:
            raise self.balance_error
        return {s.upper(): self.balances.get(s.upper(), Decimal(0)) for s in symbols}

    def fetch_spot_price(self, base, quote, fee):
        if self.price_error:
            raise self.price_error
        return self.price

    def quote_exact_input(self, token_in, token_out, amount, fee=None):
        if self.quote_error:
            raise self.quote_error
        amount = Decimal(str(amount))
        return Quote(token_in, token_out, amount, self.quote_out, fee or 10000,
                     Decimal("1"), Decimal("1"), Decimal("0"))

    def swap(self, token_in, token_out, fee, exact_in, amount_out_minimum, wallet):
        if self.swap_error:
            raise self.swap_error
        self.swaps.append((token_in, token_out, fee, exact_in, amount_out_minimum, wallet))
        return PendingTransaction(f"tx-{len(self.swaps)}", token_in, token_out)

    def wait(self, pending, attempts=8, delay=1.0, sleep=None):
        if self.wait_gate is not None:
            assert self.wait_gate.wait(timeout=5), "test never released the swap"
        return {"txId": pending.transaction_id, "transactionHash": f"0xhash-{pending.transaction_id}",
                "status": "PROCESSED"}


def token_routes(gala_usd=0.02, gwbtc_usd=60000.0):
    tokens = [
        {"symbol": "GALA", "currentPrices": {"usd": gala_usd}},
        {"symbol": "GWBTC", "currentPrices": {"usd": gwbtc_usd}},
    ]
    return {"/v1/tokens": {"tokens": tokens}}


@pytest.fixture
def fake_dex():
    return FakeDex()


@pytest.fixture
def token_api():
    return FakeApi(token_routes())


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120, color_system=None)


@pytest.fixture
def dash_config(tmp_path):
    return DashboardConfig(
        wallet_address="0x" + "ab" * 20,
        private_key=KEY_ONE,
        refresh_ms=60_000,
        slippage_bps=100,
        swap_log_path=str(tmp_path / "swap-history.log"),
        activity_log_path=str(tmp_path / "gswap.log"),
    )


@pytest.fixture
def rate_limited():
    return TransportError(429, {"error": "TOO_MANY_REQUESTS"})


@pytest.fixture
def gate():
    return threading.Event()
