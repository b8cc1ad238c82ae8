"""
Environment-driven settings for the scripts, dashboard and monitor.

`.env` is loaded once on import; every setting has a default except the
wallet credentials, whose absence is fatal for anything that signs.
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from dotenv import load_dotenv

# ---------- env ----------
load_dotenv()

DEFAULT_API_BASE      = "https://api-galaswap.gala.com"
DEFAULT_DEX_BACKEND   = "https://dex-backend-prod1.defi.gala.com"
DEFAULT_GATEWAY_BASE  = "https://gateway-mainnet.galachain.com"
DEFAULT_BUNDLER_BASE  = "https://bundle-backend-prod1.defi.gala.com"
DEFAULT_COINGECKO     = "https://api.coingecko.com"

GALA_TOKEN = "GALA|Unit|none|none"
WBTC_TOKEN = "GWBTC|Unit|none|none"

FEE_TIERS = (500, 3000, 10000)     # 0.05%, 0.30%, 1.00%
DEFAULT_FEE_TIER = 10000
DEFAULT_SLIPPAGE_BPS = 100
MAX_BPS = 10_000


class ConfigError(Exception):
    """Fatal configuration problem; raised before any loop starts."""


def _env(env: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if env is None else env


def require_env(name: str, env: Optional[Mapping[str, str]] = None) -> str:
    value = (_env(env).get(name) or "").strip()
    if not value:
        raise ConfigError(f"{name} environment variable is required")
    return value


def parse_refresh_ms(raw: Optional[str], default: int = 60_000) -> int:
    """Refresh interval in milliseconds; zero, negative or junk is fatal."""
    if raw is None or raw == "":
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ConfigError(f"refresh interval must be a positive number, got {raw!r}")
    if not value.is_finite() or int(value) <= 0:
        raise ConfigError(f"refresh interval must be a positive number, got {raw!r}")
    return int(value)


def clamp_slippage_bps(raw: Optional[str], default: int = DEFAULT_SLIPPAGE_BPS) -> int:
    """Slippage in basis points, clamped to [0, 10000]; junk falls back to the default."""
    try:
        value = Decimal(raw) if raw not in (None, "") else Decimal(default)
    except InvalidOperation:
        value = Decimal(default)
    if not value.is_finite():
        value = Decimal(default)
    return int(min(max(value, Decimal(0)), Decimal(MAX_BPS)))


def parse_page_size(raw: Optional[str], default: int = 20, cap: int = 100) -> int:
    try:
        value = int(raw) if raw not in (None, "") else default
    except ValueError:
        return default
    if value <= 0:
        return default
    return min(value, cap)


def parse_fee_tier(raw: Optional[str], default: int = DEFAULT_FEE_TIER) -> int:
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"fee tier must be an integer, got {raw!r}")


# ---------- endpoints ----------
@dataclass(frozen=True)
class Endpoints:
    api_base: str = DEFAULT_API_BASE
    token_api_base: str = DEFAULT_API_BASE
    dex_backend: str = DEFAULT_DEX_BACKEND
    gateway: str = DEFAULT_GATEWAY_BASE
    bundler: str = DEFAULT_BUNDLER_BASE
    coingecko: str = DEFAULT_COINGECKO
    timeout: float = 10.0


def load_endpoints(env: Optional[Mapping[str, str]] = None) -> Endpoints:
    e = _env(env)
    api_base = e.get("GALA_API_BASE") or DEFAULT_API_BASE
    return Endpoints(
        api_base=api_base,
        token_api_base=e.get("GALA_TOKEN_API_BASE") or api_base,
        dex_backend=e.get("GALA_EXPLORE_API_BASE") or DEFAULT_DEX_BACKEND,
        gateway=e.get("GALA_GATEWAY_BASE") or DEFAULT_GATEWAY_BASE,
        bundler=e.get("GALA_BUNDLER_BASE") or DEFAULT_BUNDLER_BASE,
        coingecko=e.get("COINGECKO_API_BASE") or DEFAULT_COINGECKO,
        timeout=float(e.get("GALA_HTTP_TIMEOUT") or 10),
    )


# ---------- dashboard ----------
@dataclass(frozen=True)
class DashboardConfig:
    wallet_address: str
    private_key: str
    base_token: str = GALA_TOKEN
    quote_token: str = WBTC_TOKEN
    fee_tier: int = DEFAULT_FEE_TIER
    refresh_ms: int = 60_000
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    page_size: int = 20
    swap_log_path: str = "swap-history.log"
    activity_log_path: str = "gswap.log"

    @property
    def base_symbol(self) -> str:
        return self.base_token.split("|")[0]

    @property
    def quote_symbol(self) -> str:
        return self.quote_token.split("|")[0]


def load_dashboard_config(env: Optional[Mapping[str, str]] = None) -> DashboardConfig:
    """Read the dashboard settings; raises ConfigError for anything fatal."""
    e = _env(env)
    refresh_ms = parse_refresh_ms(e.get("GALA_TUI_REFRESH_MS"))
    wallet = require_env("WALLET_ADDRESS", e)
    key = require_env("PRIVATE_KEY", e)
    return DashboardConfig(
        wallet_address=wallet,
        private_key=key,
        base_token=e.get("GALA_TUI_BASE_TOKEN") or GALA_TOKEN,
        quote_token=e.get("GALA_TUI_QUOTE_TOKEN") or WBTC_TOKEN,
        fee_tier=parse_fee_tier(e.get("GALA_WBTC_FEE")),
        refresh_ms=refresh_ms,
        slippage_bps=clamp_slippage_bps(e.get("GALA_WBTC_SLIPPAGE_BPS")),
        page_size=parse_page_size(e.get("GALA_BALANCE_PAGE_SIZE")),
        swap_log_path=e.get("GALA_SWAP_LOG") or "swap-history.log",
        activity_log_path=e.get("GALA_ACTIVITY_LOG") or "gswap.log",
    )


# ---------- pool monitor ----------
@dataclass(frozen=True)
class MonitorConfig:
    giving_token: str = "GOSMI|Unit|none|none"
    receiving_token: str = GALA_TOKEN
    quote_amount: Decimal = Decimal("10")
    interval_ms: int = 15_000
    threshold_pct: Decimal = Decimal("0.005")
    edge_pct: Decimal = Decimal("0.40")
    log_path: str = "pool-monitor.log"


def load_monitor_config(env: Optional[Mapping[str, str]] = None) -> MonitorConfig:
    e = _env(env)
    try:
        threshold = Decimal(e.get("GALA_MONITOR_THRESHOLD_PCT") or "0.005")
        edge = Decimal(e.get("GALA_MONITOR_EDGE_PCT") or "0.40")
        amount = Decimal(e.get("GALA_MONITOR_AMOUNT") or "10")
    except InvalidOperation as exc:
        raise ConfigError(f"invalid monitor setting: {exc}")
    if not amount.is_finite() or amount <= 0:
        raise ConfigError(f"GALA_MONITOR_AMOUNT must be a positive number, got {amount}")
    return MonitorConfig(
        giving_token=e.get("GALA_MONITOR_GIVING") or "GOSMI|Unit|none|none",
        receiving_token=e.get("GALA_MONITOR_RECEIVING") or GALA_TOKEN,
        quote_amount=amount,
        interval_ms=parse_refresh_ms(e.get("GALA_MONITOR_INTERVAL_MS"), default=15_000),
        threshold_pct=threshold,
        edge_pct=edge,
        log_path=e.get("GALA_MONITOR_LOG") or "pool-monitor.log",
    )
