#!/usr/bin/env python3
"""
Terminal dashboard for one DEX pair (default GALA <-> GWBTC)
- refreshes balances, pool spot price, USD refs and swap-history PnL on a timer
- reads line commands from stdin: refresh | dexbuy <amount> | dexsell <amount>
- at most one swap in flight; a second swap command is rejected, not queued
"""

import asyncio
import logging
import signal
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Set

from rich.console import Console
from rich.markup import escape

from .activity import ActivityLog, SwapHistory, SwapLogEntry, iso_now
from .amounts import d, format_amount, min_amount_out, normalise_amount, parse_amount, round_down
from .api import ApiClient
from .config import ConfigError, DashboardConfig, load_dashboard_config, load_endpoints
from .dex import DexClient, PriceInfo
from .errors import classify
from .keys import normalise_private_key, resolve_gala_address
from .pnl import PortfolioPnl, UsdPrices, compute_pnl, holdings_usd
from .prices import fetch_token_usd_prices

log = logging.getLogger("gswap.dashboard")

# command -> True when the swap sells the base token
ACTION_COMMANDS = {"dexbuy": True, "buy": True, "dexsell": False, "sell": False}


class ActionState(Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


@dataclass
class DashboardState:
    balances: Dict[str, Decimal] = field(default_factory=dict)
    prices: Optional[PriceInfo] = None
    usd: UsdPrices = field(default_factory=UsdPrices)
    pnl: PortfolioPnl = field(default_factory=PortfolioPnl)
    balance_error: Optional[str] = None
    price_error: Optional[str] = None
    usd_error: Optional[str] = None
    pnl_error: Optional[str] = None
    last_message: Optional[str] = "Ready. Type commands below."
    action: ActionState = ActionState.IDLE
    updated_at: Optional[datetime] = None

    def balance(self, symbol: str) -> Decimal:
        return self.balances.get(symbol.upper(), d(0))

    def begin_action(self) -> bool:
        if self.action is ActionState.IN_FLIGHT:
            return False
        self.action = ActionState.IN_FLIGHT
        return True

    def end_action(self) -> None:
        self.action = ActionState.IDLE


# ---------- rendering ----------
def render(console: Console, config: DashboardConfig, state: DashboardState, message: Optional[str] = None) -> None:
    base, quote = config.base_symbol, config.quote_symbol
    out = console.print
    console.clear()
    out(f"[bold]=== {escape(base)} <-> {escape(quote)} Monitor ===[/bold]")
    out(f"Updated: {(state.updated_at or datetime.now()).strftime('%Y-%m-%d %H:%M:%S')}")

    if state.balance_error:
        out(f"[red]Balance error:[/red] {escape(state.balance_error)}")

    out("\n[bold]Balances:[/bold]")
    out(f"- {base:<6}: {format_amount(state.balance(base), 8)}")
    out(f"- {quote:<6}: {format_amount(state.balance(quote), 8)}")

    if state.prices:
        out("\n[bold]Prices (spot):[/bold]")
        out(f"- 1 {base} = {format_amount(state.prices.quote_per_base, 12)} {quote}")
        out(f"- 1 {quote} = {format_amount(state.prices.base_per_quote, 8)} {base}")
    else:
        out("\nPrices: unavailable")
        if state.price_error:
            out(f"Reason: {escape(state.price_error)}")

    out("\n[bold]USD Prices:[/bold]")
    for sym, px, places in ((base, state.usd.base_usd, 6), (quote, state.usd.quote_usd, 2)):
        out(f"- {sym:<6}: " + (f"${format_amount(px, places)}" if px is not None else "unavailable"))
    if state.usd_error:
        out(f"[yellow]USD price warning:[/yellow] {escape(state.usd_error)}")

    holdings = holdings_usd(state.balance(base), state.balance(quote), state.usd)
    out("\n[bold]PnL:[/bold]")
    out(f"- Realized PnL: ${format_amount(state.pnl.realized_usd, 2)}")
    out(f"- Unrealized PnL (swap history): ${format_amount(state.pnl.unrealized_usd, 2)}")
    out(f"- Unrealized PnL (current holdings): ${format_amount(holdings - state.pnl.net_cost_usd, 2)}")
    out(f"- Net hold cost: ${format_amount(state.pnl.net_cost_usd, 2)}")
    out(f"- Current portfolio value: ${format_amount(holdings, 2)}")
    if state.pnl_error:
        out(f"[yellow]PnL warning:[/yellow] {escape(state.pnl_error)}")

    last = message or state.last_message
    if last:
        out(f"\nLast action: {escape(last)}")
    if state.action is ActionState.IN_FLIGHT:
        out("\n[cyan]Swap in progress...[/cyan]")

    out("\n[bold]Commands:[/bold]")
    out("  refresh             - force immediate refresh")
    out(f"  dexbuy <{base.lower()}>       - swap {base} -> {quote} using the DEX pool")
    out(f"  dexsell <{quote.lower()}>     - swap {quote} -> {base} using the DEX pool")
    out(f"\nRefresh interval: {config.refresh_ms / 1000:g}s (Ctrl+C to exit)")


class Dashboard:
    def __init__(
        self,
        config: DashboardConfig,
        dex: DexClient,
        token_api: ApiClient,
        history: SwapHistory,
        activity: ActivityLog,
        console: Optional[Console] = None,
    ):
        self.config = config
        self.dex = dex
        self.token_api = token_api
        self.history = history
        self.activity = activity
        self.console = console or Console()
        self.wallet = resolve_gala_address(config.wallet_address)
        self.state = DashboardState()
        self._pending: Set[asyncio.Task] = set()

    def render(self, message: Optional[str] = None) -> None:
        render(self.console, self.config, self.state, message)

    # ---------- refresh ----------
    def _fetch_balances(self) -> Dict[str, Decimal]:
        symbols = (self.config.base_symbol, self.config.quote_symbol)
        return self.dex.get_balances(self.wallet, symbols, self.config.page_size)

    def _fetch_usd(self) -> UsdPrices:
        px = fetch_token_usd_prices(self.token_api, (self.config.base_symbol, self.config.quote_symbol))
        return UsdPrices(base_usd=px.get(self.config.base_symbol.upper()),
                         quote_usd=px.get(self.config.quote_symbol.upper()))

    async def refresh(self) -> None:
        """Four independent sections; a failure in one never stops the others."""
        st = self.state
        cfg = self.config

        try:
            st.balances = await asyncio.to_thread(self._fetch_balances)
            st.balance_error = None
        except Exception as e:
            st.balance_error = str(classify(e))
            st.balances = {}

        try:
            st.prices = await asyncio.to_thread(self.dex.fetch_spot_price, cfg.base_token, cfg.quote_token, cfg.fee_tier)
            st.price_error = None
        except Exception as e:
            st.price_error = str(classify(e))
            st.prices = None

        try:
            st.usd = await asyncio.to_thread(self._fetch_usd)
            st.usd_error = None
        except Exception as e:
            st.usd_error = str(classify(e))
            st.usd = UsdPrices()

        try:
            entries = await asyncio.to_thread(self.history.entries)
            st.pnl = compute_pnl(entries, st.usd)
            st.pnl_error = None
        except Exception as e:
            log.error("Failed to compute PnL: %s", e)
            st.pnl_error = str(e)
            st.pnl = PortfolioPnl()

        st.updated_at = datetime.now()
        self.render()

    # ---------- commands ----------
    def _reject(self, message: str) -> None:
        self.state.last_message = message
        self.render()

    async def handle_command(self, line: str) -> None:
        parts = line.split()
        if not parts:
            return
        command, args = parts[0].lower(), parts[1:]

        if command == "refresh":
            self.state.last_message = "Manual refresh requested."
            await self.refresh()
            return

        if command not in ACTION_COMMANDS:
            self._reject(f"Unknown command: {parts[0]}")
            return

        sells_base = ACTION_COMMANDS[command]
        src = self.config.base_symbol if sells_base else self.config.quote_symbol
        if not args:
            self._reject(f"Usage: {command} <{src.lower()}Amount>")
            return
        try:
            amount = parse_amount(args[0])
        except ValueError:
            amount = d(0)
        if amount <= 0:
            self._reject("Invalid amount. Provide a positive number.")
            return
        available = self.state.balance(src)
        if amount > available:
            self._reject(f"Insufficient {src} balance. Available: {format_amount(available)} {src}")
            return
        if not self.state.begin_action():
            self._reject("Swap already in progress (busy). Please wait...")
            return

        await self._run_action(sells_base, amount)

    async def _run_action(self, sells_base: bool, amount: Decimal) -> None:
        cfg = self.config
        token_in, token_out = (cfg.base_token, cfg.quote_token) if sells_base else (cfg.quote_token, cfg.base_token)
        sym_in, sym_out = token_in.split("|")[0], token_out.split("|")[0]
        direction = "start" if sells_base else "stop"

        self.render("Submitting DEX swap...")
        try:
            receipt = await asyncio.to_thread(self._execute_swap, direction, token_in, token_out, amount)
            tx = receipt.get("transactionHash") or receipt.get("txId") or "unknown"
            self.state.last_message = f"{sym_in}->{sym_out} swap confirmed. Tx: {tx}"
        except Exception as e:
            err = classify(e)
            self.state.last_message = f"DEX swap failed: {err}"
            details: Dict[str, Any] = {"direction": direction, "amount": normalise_amount(amount)}
            details.update(err.diagnostics())
            self.activity.event("swap_failed", details)
        finally:
            self.state.end_action()
        await self.refresh()

    def _execute_swap(self, direction: str, token_in: str, token_out: str, amount: Decimal) -> Dict[str, Any]:
        """quote -> min out -> submit -> confirm -> history. Runs off the event loop."""
        cfg = self.config
        quote = self.dex.quote_exact_input(token_in, token_out, amount, cfg.fee_tier)
        amount_in = round_down(amount, 8)
        min_out = min_amount_out(quote.amount_out, cfg.slippage_bps)
        price = quote.amount_out / amount

        self.activity.event("swap_submitted", {
            "direction": direction,
            "amountIn": normalise_amount(amount_in),
            "minAmountOut": normalise_amount(min_out),
            "feeTier": cfg.fee_tier,
        })

        pending = self.dex.swap(token_in, token_out, cfg.fee_tier, amount_in, min_out, self.wallet)
        receipt = self.dex.wait(pending)

        entry = SwapLogEntry(
            timestamp=iso_now(),
            direction=direction,
            amountIn=normalise_amount(amount_in),
            quotedAmountOut=normalise_amount(quote.amount_out),
            minAmountOut=normalise_amount(min_out),
            price=normalise_amount(price),
            feeTier=cfg.fee_tier,
            slippageBps=cfg.slippage_bps,
            txId=receipt.get("txId"),
            transactionHash=receipt.get("transactionHash"),
            walletAddress=self.wallet,
        )
        self.history.record(entry)
        self.activity.event("swap_confirmed", {
            "direction": direction,
            "amountIn": entry.amountIn,
            "quotedAmountOut": entry.quotedAmountOut,
            "minAmountOut": entry.minAmountOut,
            "transactionHash": entry.transactionHash,
            "txId": entry.txId,
        })
        return receipt

    # ---------- loop ----------
    def submit(self, line: str) -> asyncio.Task:
        """Run a command without waiting for it, so a pending swap never blocks input."""
        task = asyncio.create_task(self.handle_command(line))
        self._pending.add(task)
        task.add_done_callback(self._command_done)
        return task

    def _command_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("Command error: %s", task.exception())

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.config.refresh_ms / 1000)
            await self.refresh()

    async def _dispatch(self, lines: "asyncio.Queue[Optional[str]]") -> None:
        while True:
            line = await lines.get()
            if line is None:  # stdin closed; keep refreshing until a signal arrives
                return
            self.submit(line)

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        stop = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except (NotImplementedError, RuntimeError):
                pass

        await self.refresh()

        lines: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        start_stdin_reader(loop, lines)
        background = [asyncio.create_task(self._tick()), asyncio.create_task(self._dispatch(lines))]
        try:
            await stop.wait()
        finally:
            for task in background + list(self._pending):
                task.cancel()


def start_stdin_reader(loop: asyncio.AbstractEventLoop, lines: "asyncio.Queue[Optional[str]]") -> None:
    # daemon thread so a blocked readline never holds up interpreter exit
    def pump():
        try:
            for line in sys.stdin:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, None)
        except RuntimeError:  # loop already closed
            return

    threading.Thread(target=pump, name="stdin-reader", daemon=True).start()


def main() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s [%(levelname)s] %(message)s", stream=sys.stderr)
    try:
        config = load_dashboard_config()
        private_key = normalise_private_key(config.private_key)
    except (ConfigError, ValueError) as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    endpoints = load_endpoints()
    dashboard = Dashboard(
        config,
        DexClient(endpoints, private_key),
        ApiClient(endpoints.token_api_base, endpoints.timeout),
        SwapHistory(config.swap_log_path),
        ActivityLog(config.activity_log_path),
    )
    try:
        asyncio.run(dashboard.run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
