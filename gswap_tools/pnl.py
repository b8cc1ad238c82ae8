"""Naive PnL: replay the swap history against a snapshot of USD prices."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from .activity import SwapLogEntry
from .amounts import d


@dataclass(frozen=True)
class UsdPrices:
    base_usd: Optional[Decimal] = None
    quote_usd: Optional[Decimal] = None


@dataclass
class PortfolioPnl:
    total_base_in: Decimal = field(default_factory=lambda: d(0))
    total_base_out: Decimal = field(default_factory=lambda: d(0))
    total_quote_in: Decimal = field(default_factory=lambda: d(0))
    total_quote_out: Decimal = field(default_factory=lambda: d(0))
    realized_usd: Decimal = field(default_factory=lambda: d(0))
    unrealized_usd: Decimal = field(default_factory=lambda: d(0))
    net_cost_usd: Decimal = field(default_factory=lambda: d(0))


def compute_pnl(entries: Iterable[SwapLogEntry], usd: UsdPrices) -> PortfolioPnl:
    """
    Debit the asset given, credit the asset received, entry by entry.
    A sale is valued at today's USD price of the asset given; with no price the
    entry still moves positions but adds nothing in USD.
    Running positions may go negative; only what is actually held is valued.
    """
    result = PortfolioPnl()
    base = d(0)
    quote = d(0)
    realized = d(0)
    net_cost = d(0)

    for entry in entries:
        amount_in = d(entry.amountIn)
        amount_out = d(entry.quotedAmountOut)

        if entry.sells_base:
            base -= amount_in
            quote += amount_out
            result.total_base_out += amount_in
            result.total_quote_in += amount_out
            price = usd.base_usd
        else:
            quote -= amount_in
            base += amount_out
            result.total_quote_out += amount_in
            result.total_base_in += amount_out
            price = usd.quote_usd

        if price is not None:
            sale_usd = amount_in * price
            net_cost -= sale_usd
            realized += sale_usd

    holdings = d(0)
    if usd.base_usd is not None and base > 0:
        holdings += base * usd.base_usd
    if usd.quote_usd is not None and quote > 0:
        holdings += quote * usd.quote_usd

    result.realized_usd = realized
    result.net_cost_usd = net_cost
    result.unrealized_usd = holdings + net_cost
    return result


def holdings_usd(base_balance: Decimal, quote_balance: Decimal, usd: UsdPrices) -> Decimal:
    """Value of live balances; zero unless both USD prices are known."""
    if usd.base_usd is None or usd.quote_usd is None:
        return d(0)
    return base_balance * usd.base_usd + quote_balance * usd.quote_usd
