#!/usr/bin/env python3
"""
Pool monitor: re-quote a fixed amount on an interval and flag price moves
- `monitor`: poll until Ctrl+C; moves above the threshold count as swap activity
- `analyze`: sample for 30s, write what was seen to pool-data-<ms>.json
- every check also compares the pool rate against USD reference prices and
  flags a divergence above GALA_MONITOR_EDGE_PCT
Messages go to the console and to pool-monitor.log.
"""

import json
import logging
import sys
import time
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .activity import iso_now
from .amounts import d, normalise_amount
from .api import ApiClient, is_rate_limited, with_backoff
from .config import ConfigError, MonitorConfig, load_endpoints, load_monitor_config, require_env
from .dex import DexClient, Quote, token_symbol
from .errors import ApiError, classify
from .prices import fetch_token_usd_prices

log = logging.getLogger("gswap.monitor")

RefPrices = Callable[[], Tuple[Optional[Decimal], Optional[Decimal]]]


def setup_logging(path: str) -> None:
    log.setLevel(logging.INFO)
    log.propagate = False
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter("%(message)s"))
    to_file = logging.FileHandler(path, encoding="utf-8")
    to_file.setFormatter(logging.Formatter("[%(asctime)s] %(message)s"))
    log.handlers[:] = [console, to_file]


@dataclass
class DetectedMove:
    timestamp: str
    giving_token: str
    receiving_token: str
    previous_price: Decimal
    current_price: Decimal
    change_pct: Decimal
    amount_in: Decimal
    amount_out: Decimal
    fee_tier: int

    def to_record(self, tx_hash: str = "", user: str = "detected") -> Dict[str, Any]:
        return {
            "givingTokenClass": self.giving_token,
            "receivingTokenClass": self.receiving_token,
            "givingAmount": normalise_amount(self.amount_in),
            "receivingAmount": normalise_amount(self.amount_out),
            "timestamp": self.timestamp,
            "transactionHash": tx_hash or f"live-swap-{int(time.time() * 1000)}",
            "userAddress": user,
            "feeTier": str(self.fee_tier),
            "changePct": normalise_amount(self.change_pct),
        }


class PoolMonitor:
    def __init__(
        self,
        dex: DexClient,
        config: MonitorConfig,
        ref_prices: Optional[RefPrices] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.dex = dex
        self.config = config
        self.ref_prices = ref_prices
        self.sleep = sleep
        self.last_price: Optional[Decimal] = None
        self.last_quote: Optional[Quote] = None
        self.swap_count = 0
        self.volume = d(0)
        self.consecutive_errors = 0
        self.started = time.time()

    @property
    def giving_symbol(self) -> str:
        return token_symbol(self.config.giving_token)

    @property
    def receiving_symbol(self) -> str:
        return token_symbol(self.config.receiving_token)

    def quote(self) -> Quote:
        cfg = self.config
        return with_backoff(
            lambda: self.dex.quote_exact_input(cfg.giving_token, cfg.receiving_token, cfg.quote_amount),
            attempts=3, base_delay=2.0, sleep=self.sleep,
        )

    def start(self) -> Quote:
        q = self.quote()
        self.last_quote = q
        self.last_price = q.current_price
        self.started = time.time()
        return q

    def check_once(self, threshold_pct: Optional[Decimal] = None) -> Optional[DetectedMove]:
        """Re-quote; a move above the threshold is recorded and becomes the new reference price."""
        threshold = self.config.threshold_pct if threshold_pct is None else threshold_pct
        q = self.quote()
        self.last_quote = q
        previous = self.last_price
        if previous is None or previous == 0:
            self.last_price = q.current_price
            return None

        change_pct = (q.current_price - previous) / previous * 100
        if abs(change_pct) <= threshold:
            return None

        self.swap_count += 1
        self.volume += self.config.quote_amount
        self.last_price = q.current_price
        return DetectedMove(
            timestamp=iso_now(),
            giving_token=self.config.giving_token,
            receiving_token=self.config.receiving_token,
            previous_price=previous,
            current_price=q.current_price,
            change_pct=change_pct,
            amount_in=q.amount_in,
            amount_out=q.amount_out,
            fee_tier=q.fee_tier,
        )

    def divergence_pct(self, q: Quote) -> Optional[Decimal]:
        """Pool rate vs the USD reference cross rate, in percent; None without both refs."""
        if self.ref_prices is None or q.amount_in <= 0:
            return None
        giving_usd, receiving_usd = self.ref_prices()
        if not giving_usd or not receiving_usd:
            return None
        ref_rate = giving_usd / receiving_usd  # receiving per 1 giving
        rate = q.amount_out / q.amount_in
        return (rate / ref_rate - 1) * 100

    def arbitrage_signal(self, q: Quote) -> Optional[Decimal]:
        div = self.divergence_pct(q)
        if div is not None and abs(div) >= self.config.edge_pct:
            return div
        return None

    def summary(self) -> str:
        runtime = max(time.time() - self.started, 1e-9)
        per_min = self.swap_count / runtime * 60 if self.swap_count else 0
        return (f"{self.swap_count} swaps in {runtime:.1f}s ({per_min:.2f}/min) | "
                f"volume {normalise_amount(self.volume)} {self.giving_symbol}")


def token_api_refs(client: ApiClient, giving: str, receiving: str) -> RefPrices:
    def fetch() -> Tuple[Optional[Decimal], Optional[Decimal]]:
        try:
            px = fetch_token_usd_prices(client, (giving, receiving))
        except ApiError as e:
            log.debug("reference prices unavailable: %s", e)
            return None, None
        return px.get(giving.upper()), px.get(receiving.upper())
    return fetch


# ---------- recent swap lookup ----------
EVENT_SOURCES = (
    ("/api/asset/dexv3-contract/events", "events", ("user", "from", "sender", "owner"), ("transactionHash", "hash", "txHash")),
    ("/api/asset/transactions", "transactions", ("from", "sender", "user", "owner"), ("hash", "transactionHash", "txHash")),
    ("/api/asset/operations", "operations", ("user", "from", "sender"), ("hash", "transactionHash")),
)


def _first(item: Dict[str, Any], keys: Tuple[str, ...]) -> str:
    for k in keys:
        if item.get(k):
            return str(item[k])
    return "Unknown"


def find_recent_swap(gateway: ApiClient) -> Optional[Dict[str, Any]]:
    """Best-effort: first swap-looking record from the gateway's recent-activity endpoints."""
    for path, key, user_keys, hash_keys in EVENT_SOURCES:
        try:
            js = gateway.get(path, params={"limit": 10})
        except ApiError as e:
            log.info("   lookup via %s failed: %s", path, e)
            continue
        items = js.get(key) if isinstance(js, dict) else None
        if not isinstance(items, list):
            continue
        for item in items:
            if isinstance(item, dict) and "swap" in json.dumps(item, default=str).lower():
                return {"source": path, "user": _first(item, user_keys), "txHash": _first(item, hash_keys), "record": item}
    return None


# ---------- modes ----------
def run_monitor(
    monitor: PoolMonitor,
    gateway: Optional[ApiClient] = None,
    max_checks: Optional[int] = None,
) -> None:
    cfg = monitor.config
    g, r = monitor.giving_symbol, monitor.receiving_symbol
    interval = cfg.interval_ms / 1000

    log.info("Starting continuous pool monitoring...")
    log.info(f"Pool: {cfg.giving_token} -> {cfg.receiving_token}")
    log.info(f"Check interval: {interval:g} seconds")
    log.info("Press Ctrl+C to stop monitoring\n")

    initial = monitor.start()
    log.info("Initial pool state:")
    log.info(f"  Price: {initial.current_price:.8f}")
    log.info(f"  Fee tier: {initial.fee_tier}")
    log.info(f"  Price impact: {initial.price_impact:.6f}")

    checks = 0
    try:
        while max_checks is None or checks < max_checks:
            monitor.sleep(interval)
            checks += 1
            try:
                move = monitor.check_once()
                monitor.consecutive_errors = 0
            except Exception as e:
                err = classify(e)
                monitor.consecutive_errors += 1
                if is_rate_limited(err):
                    backoff = min(30.0, (2 ** monitor.consecutive_errors) * 5.0)
                    log.warning(f"Rate limited (HTTP 429) - attempt {monitor.consecutive_errors}, backing off {backoff:g}s")
                    monitor.sleep(backoff)
                    continue
                log.warning(f"Error during monitoring: {err}")
                if monitor.consecutive_errors >= 5:
                    interval *= 2
                    log.warning(f"Too many consecutive errors, increasing check interval to {interval:g} seconds")
                    monitor.consecutive_errors = 0
                continue

            q = monitor.last_quote
            price = q.current_price if q else d(0)
            change = (move.change_pct if move else d(0))
            log.info(f"[{iso_now()}] Price: {price:.8f} | Change: {change:+.4f}%")

            if q is not None:
                div = monitor.arbitrage_signal(q)
                if div is not None:
                    log.info(f"ARBITRAGE SIGNAL: pool rate {div:+.3f}% vs USD reference ({g}->{r})")

            if move is None:
                continue

            log.info(f"SWAP #{monitor.swap_count} DETECTED!")
            log.info(f"   Price change: {move.change_pct:+.4f}%")
            log.info(f"   New price: {move.current_price:.8f}")
            log.info(f"   Volume: {normalise_amount(move.amount_in)} {g}")
            log.info(f"   Rate: 1 {g} = {move.amount_out / move.amount_in:.6f} {r}")
            log.info(f"   Fee tier: {move.fee_tier}")

            # only every 3rd move to keep request volume down
            if gateway is not None and monitor.swap_count % 3 == 0:
                found = find_recent_swap(gateway)
                if found:
                    log.info(f"   User: {found['user']} | TX: {found['txHash']} (via {found['source']})")
                else:
                    log.info("   Could not retrieve transaction details from any source")

            log.info(f"   Total swaps: {monitor.swap_count} | Total volume: {normalise_amount(monitor.volume)} {g}\n")
            if monitor.swap_count % 10 == 0:
                log.info(f"SUMMARY: {monitor.summary()}")
    except KeyboardInterrupt:
        pass

    log.info("\nMonitoring stopped")
    log.info(f"Final summary: {monitor.summary()}")


def analyze(
    monitor: PoolMonitor,
    duration_s: float = 30.0,
    interval_s: float = 2.0,
    threshold_pct: Decimal = Decimal("0.01"),
    out_dir: str = ".",
) -> Tuple[List[Dict[str, Any]], Path]:
    """Sample the pool for `duration_s`; returns (records, json path)."""
    cfg = monitor.config
    g, r = monitor.giving_symbol, monitor.receiving_symbol
    log.info(f"Analyzing pool activity: {cfg.giving_token} -> {cfg.receiving_token}")

    initial = monitor.start()
    log.info(f"Initial pool state: price {initial.current_price} | fee tier {initial.fee_tier} | impact {initial.price_impact:.6f}")

    records: List[Dict[str, Any]] = []
    max_checks = max(int(duration_s / interval_s), 1)
    for n in range(1, max_checks + 1):
        monitor.sleep(interval_s)
        try:
            move = monitor.check_once(threshold_pct)
        except Exception as e:
            log.warning(f"Error during monitoring check {n}: {classify(e)}")
            continue
        price = monitor.last_quote.current_price if monitor.last_quote else d(0)
        log.info(f"Check {n}/{max_checks}: Price {price:.8f} ({'CHANGED' if move else 'stable'})")
        if move:
            log.info(f"DETECTED SWAP ACTIVITY! Price changed by {move.change_pct:.4f}%")
            records.append(move.to_record())

    if not records:
        log.info("No live swap activity detected during monitoring period")
        records.append({
            "givingTokenClass": cfg.giving_token,
            "receivingTokenClass": cfg.receiving_token,
            "givingAmount": normalise_amount(initial.amount_in),
            "receivingAmount": normalise_amount(initial.amount_out),
            "timestamp": iso_now(),
            "transactionHash": "current-state",
            "userAddress": "pool-state",
            "feeTier": str(initial.fee_tier),
        })

    total_in = sum((d(x["givingAmount"]) for x in records), d(0))
    total_out = sum((d(x["receivingAmount"]) for x in records), d(0))
    avg = total_out / total_in if total_in else d(0)
    log.info(f"Total volume: {normalise_amount(total_in)} {g}")
    log.info(f"Average rate: 1 {g} = {avg:.6f} {r}")
    for i, x in enumerate(records[:10], 1):
        log.info(f"{i}. {x['givingAmount']} -> {x['receivingAmount']} ({x['timestamp']})  TX: {x['transactionHash']}")

    data = {
        "pool": f"{cfg.giving_token} -> {cfg.receiving_token}",
        "analysisTime": iso_now(),
        "statistics": {
            "totalSwaps": len(records),
            "totalGivingAmount": normalise_amount(total_in),
            "totalReceivingAmount": normalise_amount(total_out),
            "averageRate": normalise_amount(avg),
        },
        "transactions": records,
    }
    path = Path(out_dir) / f"pool-data-{int(time.time() * 1000)}.json"
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    log.info(f"Detailed data saved to: {path}")
    return records, path


USAGE = """Usage:
  gswap-monitor analyze  - analyze recent pool activity
  gswap-monitor monitor  - start continuous monitoring"""


def main(argv: Optional[List[str]] = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    mode = args[0] if args else "analyze"
    if mode not in ("analyze", "monitor"):
        print(f'Invalid mode "{mode}".\n{USAGE}', file=sys.stderr)
        sys.exit(1)

    try:
        private_key = require_env("PRIVATE_KEY")
        require_env("WALLET_ADDRESS")
        config = load_monitor_config()
    except ConfigError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    setup_logging(config.log_path)
    endpoints = load_endpoints()
    dex = DexClient(endpoints, private_key)
    token_api = ApiClient(endpoints.token_api_base, endpoints.timeout)
    refs = token_api_refs(token_api, token_symbol(config.giving_token), token_symbol(config.receiving_token))
    monitor = PoolMonitor(dex, config, ref_prices=refs)

    try:
        if mode == "monitor":
            run_monitor(monitor, gateway=dex.gateway)
        else:
            analyze(monitor)
    except ApiError as e:
        log.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
