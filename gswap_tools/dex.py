"""
GalaChain DEX client: the calls the exchange SDK makes, over plain REST.
- dex backend: quotes, user assets, pool explorer
- gateway:     chain contract reads (pool data)
- bundler:     signed swap submission + transaction status
Quoting and pool math stay remote; the only local math is squaring a pool's
sqrtPrice into a spot price.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .amounts import d, normalise_amount
from .api import ApiClient
from .config import FEE_TIERS, Endpoints
from .errors import ApiError, TransportError, UnknownError, ValidationError
from .keys import sign_payload, signer_public_key

log = logging.getLogger("gswap.dex")

# sqrtPrice limits used when no explicit limit is wanted (full range)
MIN_SQRT_PRICE_LIMIT = "0.000000000000000000094212147"
MAX_SQRT_PRICE_LIMIT = "18446050999999999999"


# ---------- token class keys ----------
def parse_token_class(token: str, with_instance: bool = True) -> Dict[str, str]:
    """'GALA|Unit|none|none' -> {collection, category, type, additionalKey[, instance]}"""
    parts = token.split("|")
    if len(parts) != 4 or not all(parts):
        raise ValidationError(f"Invalid token class key: {token}")
    collection, category, type_, additional_key = parts
    cls = {"collection": collection, "category": category, "type": type_, "additionalKey": additional_key}
    if with_instance:
        cls["instance"] = "0"
    return cls


def token_symbol(token: str) -> str:
    return token.split("|")[0]


def backend_token_key(token: str) -> str:
    # the dex backend takes class keys with '$' separators in query strings
    return token.replace("|", "$")


def sort_tokens(a: str, b: str) -> Tuple[str, str]:
    """(token0, token1) as the pool orders them."""
    return (a, b) if a < b else (b, a)


# ---------- value types ----------
@dataclass
class PriceInfo:
    quote_per_base: Decimal
    base_per_quote: Decimal


@dataclass
class Quote:
    token_in: str
    token_out: str
    amount_in: Decimal
    amount_out: Decimal
    fee_tier: int
    current_price: Decimal
    new_price: Decimal
    price_impact: Decimal
    quote_id: Optional[str] = None


@dataclass
class PendingTransaction:
    transaction_id: str
    token_in: str
    token_out: str


def _data(js: Any) -> Any:
    """Unwrap the `{status, error, message, data}` envelope used by the dex backend."""
    if isinstance(js, dict):
        if js.get("error") is True:
            raise TransportError(js.get("status"), js)
        if "data" in js:
            return js["data"]
    return js


class DexClient:
    def __init__(
        self,
        endpoints: Endpoints,
        private_key: Optional[str] = None,
        backend: Optional[ApiClient] = None,
        gateway: Optional[ApiClient] = None,
        bundler: Optional[ApiClient] = None,
    ):
        self.endpoints = endpoints
        self.private_key = private_key
        self.backend = backend or ApiClient(endpoints.dex_backend, endpoints.timeout)
        self.gateway = gateway or ApiClient(endpoints.gateway, endpoints.timeout)
        self.bundler = bundler or ApiClient(endpoints.bundler, endpoints.timeout)

    # ---------- assets ----------
    def get_user_assets(self, address: str, page: int = 1, limit: int = 20) -> List[Dict[str, Any]]:
        data = _data(self.backend.get("/user/assets", params={"address": address, "page": page, "limit": limit}))
        if isinstance(data, dict):
            return data.get("tokens") or data.get("token") or []
        return data or []

    def get_balances(self, address: str, symbols: Iterable[str], page_size: int = 20) -> Dict[str, Decimal]:
        wanted = {s.upper() for s in symbols}
        result = {s: d(0) for s in wanted}
        for token in self.get_user_assets(address, 1, page_size):
            sym = str(token.get("symbol", "")).upper()
            if sym in wanted:
                result[sym] = d(token.get("quantity", "0"))
        return result

    # ---------- pools ----------
    def get_pool_data(self, token_in: str, token_out: str, fee: int) -> Dict[str, Any]:
        token0, token1 = sort_tokens(token_in, token_out)
        body = {
            "token0": parse_token_class(token0, with_instance=False),
            "token1": parse_token_class(token1, with_instance=False),
            "fee": fee,
        }
        js = self.gateway.post("/api/asset/dexv3-contract/GetPoolData", body)
        if isinstance(js, dict) and "Data" in js:
            if js.get("Status") not in (None, 1):
                raise TransportError(None, js, message=f"GetPoolData failed: {js.get('Message', js)}")
            js = js["Data"]
        if not isinstance(js, dict) or "sqrtPrice" not in js:
            raise ValidationError(f"no pool for {token_symbol(token_in)}/{token_symbol(token_out)} at fee {fee}")
        return js

    @staticmethod
    def calculate_spot_price(token_in: str, token_out: str, sqrt_price: Any) -> Decimal:
        """Units of token_out per 1 token_in."""
        price = d(sqrt_price) ** 2  # token1 per token0
        token0, _ = sort_tokens(token_in, token_out)
        if token_in == token0:
            return price
        return d(1) / price if price != 0 else d(0)

    def fetch_spot_price(self, base: str, quote: str, fee: int) -> PriceInfo:
        for token_in, token_out in ((base, quote), (quote, base)):
            try:
                pool = self.get_pool_data(token_in, token_out, fee)
                spot = self.calculate_spot_price(token_in, token_out, pool["sqrtPrice"])
            except ApiError as e:
                log.debug("spot price %s->%s failed: %s", token_in, token_out, e)
                continue
            if not spot.is_finite() or spot <= 0:
                continue
            if token_in == base:
                return PriceInfo(quote_per_base=spot, base_per_quote=d(1) / spot)
            return PriceInfo(quote_per_base=d(1) / spot, base_per_quote=spot)
        raise UnknownError(f"Unable to fetch spot price for {token_symbol(base)}/{token_symbol(quote)}")

    # ---------- quoting ----------
    def _quote_fee(self, token_in: str, token_out: str, amount: Decimal, fee: int) -> Quote:
        params = {
            "tokenIn": backend_token_key(token_in),
            "tokenOut": backend_token_key(token_out),
            "amountIn": normalise_amount(amount),
            "fee": fee,
        }
        data = _data(self.backend.get("/v1/trade/quote", params=params))
        if not isinstance(data, dict) or "amountOut" not in data:
            raise ValidationError(f"malformed quote response: {data!r}")
        current = self.calculate_spot_price(token_in, token_out, data["currentSqrtPrice"])
        new = self.calculate_spot_price(token_in, token_out, data.get("newSqrtPrice", data["currentSqrtPrice"]))
        impact = (new - current) / current if current != 0 else d(0)
        return Quote(
            token_in=token_in,
            token_out=token_out,
            amount_in=d(amount),
            amount_out=abs(d(data["amountOut"])),
            fee_tier=int(data.get("fee", fee)),
            current_price=current,
            new_price=new,
            price_impact=impact,
            quote_id=data.get("quoteId"),
        )

    def quote_exact_input(self, token_in: str, token_out: str, amount: Any, fee: Optional[int] = None) -> Quote:
        """Quote an exact-input trade. Without a fee tier every tier is tried and the best output wins."""
        amount = d(amount)
        if fee is not None:
            return self._quote_fee(token_in, token_out, amount, fee)
        best: Optional[Quote] = None
        last_err: Optional[ApiError] = None
        for tier in FEE_TIERS:
            try:
                q = self._quote_fee(token_in, token_out, amount, tier)
            except ApiError as e:
                last_err = e
                continue
            if best is None or q.amount_out > best.amount_out:
                best = q
        if best is None:
            raise last_err or UnknownError("no fee tier returned a quote")
        return best

    # ---------- swapping ----------
    def build_swap_payload(
        self, token_in: str, token_out: str, fee: int, exact_in: Any, amount_out_minimum: Any, wallet: str
    ) -> Dict[str, Any]:
        token0, token1 = sort_tokens(token_in, token_out)
        zero_for_one = token_in == token0
        return {
            "token0": parse_token_class(token0, with_instance=False),
            "token1": parse_token_class(token1, with_instance=False),
            "fee": fee,
            "amount": normalise_amount(exact_in),
            "zeroForOne": zero_for_one,
            "sqrtPriceLimit": MIN_SQRT_PRICE_LIMIT if zero_for_one else MAX_SQRT_PRICE_LIMIT,
            "recipient": wallet,
            # amounts leaving the pool are negative
            "amountOutMinimum": "-" + normalise_amount(amount_out_minimum),
            "uniqueKey": f"galaswap-operation-{uuid.uuid4()}",
        }

    def swap(
        self, token_in: str, token_out: str, fee: int, exact_in: Any, amount_out_minimum: Any, wallet: str
    ) -> PendingTransaction:
        if not self.private_key:
            raise ValidationError("a private key is required to submit swaps")
        payload = self.build_swap_payload(token_in, token_out, fee, exact_in, amount_out_minimum, wallet)
        payload["signerPublicKey"] = signer_public_key(self.private_key)
        signed = sign_payload(payload, self.private_key)
        body = {"method": "Swap", "signedDto": signed, "type": "swap"}
        js = self.bundler.post("/bundle", body, wallet_address=wallet)
        data = _data(js)
        tx_id = data.get("data") if isinstance(data, dict) else data
        if not tx_id:
            raise ValidationError(f"bundler returned no transaction id: {js!r}")
        return PendingTransaction(transaction_id=str(tx_id), token_in=token_in, token_out=token_out)

    def wait(
        self,
        pending: PendingTransaction,
        attempts: int = 8,
        delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Dict[str, Any]:
        """
        Poll the bundler until the transaction is processed.
        Returns {txId, transactionHash, status}; raises on a failed status or when polling runs out.
        """
        for attempt in range(attempts):
            data = _data(self.bundler.get("/transaction-status", params={"id": pending.transaction_id}))
            status = str((data or {}).get("status", "")).upper() if isinstance(data, dict) else ""
            if status in ("PROCESSED", "CONFIRMED", "SUCCESS"):
                return {
                    "txId": pending.transaction_id,
                    "transactionHash": data.get("transactionHash") or data.get("hash"),
                    "status": status,
                }
            if status in ("FAILED", "REJECTED"):
                raise TransportError(None, data, message=f"transaction {pending.transaction_id} {status.lower()}")
            sleep(delay * (2 ** attempt))
        raise UnknownError(f"transaction {pending.transaction_id} not confirmed after {attempts} checks")
