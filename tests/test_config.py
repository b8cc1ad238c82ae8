"""Tests for environment parsing."""
from decimal import Decimal

import pytest

from gswap_tools.config import (
    ConfigError,
    GALA_TOKEN,
    clamp_slippage_bps,
    load_dashboard_config,
    load_endpoints,
    load_monitor_config,
    parse_page_size,
    parse_refresh_ms,
)

CREDS = {"WALLET_ADDRESS": "0x" + "ab" * 20, "PRIVATE_KEY": "cd" * 32}


@pytest.mark.parametrize("raw", ["0", "-5", "0.5", "abc", "nan"])
def test_refresh_interval_rejects_non_positive(raw):
    with pytest.raises(ConfigError):
        parse_refresh_ms(raw)


def test_refresh_interval_default_and_value():
    assert parse_refresh_ms(None) == 60_000
    assert parse_refresh_ms("") == 60_000
    assert parse_refresh_ms("1500") == 1500


@pytest.mark.parametrize("raw,expected", [
    (None, 100), ("", 100), ("50", 50), ("-3", 0), ("20000", 10000), ("junk", 100),
])
def test_slippage_clamped(raw, expected):
    assert clamp_slippage_bps(raw) == expected


@pytest.mark.parametrize("raw,expected", [(None, 20), ("0", 20), ("x", 20), ("50", 50), ("500", 100)])
def test_page_size(raw, expected):
    assert parse_page_size(raw) == expected


def test_dashboard_config_defaults():
    cfg = load_dashboard_config(dict(CREDS))
    assert cfg.refresh_ms == 60_000
    assert cfg.slippage_bps == 100
    assert cfg.fee_tier == 10000
    assert cfg.base_token == GALA_TOKEN
    assert (cfg.base_symbol, cfg.quote_symbol) == ("GALA", "GWBTC")


@pytest.mark.parametrize("missing", ["WALLET_ADDRESS", "PRIVATE_KEY"])
def test_dashboard_config_requires_credentials(missing):
    env = dict(CREDS)
    env[missing] = "  "
    with pytest.raises(ConfigError) as exc:
        load_dashboard_config(env)
    assert missing in str(exc.value)


def test_dashboard_config_bad_refresh_is_fatal():
    env = dict(CREDS, GALA_TUI_REFRESH_MS="0")
    with pytest.raises(ConfigError):
        load_dashboard_config(env)


def test_endpoint_overrides():
    eps = load_endpoints({"GALA_API_BASE": "http://localhost:9000", "GALA_HTTP_TIMEOUT": "3"})
    assert eps.api_base == "http://localhost:9000"
    assert eps.token_api_base == "http://localhost:9000"
    assert eps.timeout == 3.0


def test_monitor_config():
    cfg = load_monitor_config({"GALA_MONITOR_AMOUNT": "25", "GALA_MONITOR_EDGE_PCT": "1.5"})
    assert cfg.quote_amount == Decimal("25")
    assert cfg.edge_pct == Decimal("1.5")
    assert cfg.interval_ms == 15_000
    with pytest.raises(ConfigError):
        load_monitor_config({"GALA_MONITOR_AMOUNT": "lots"})


@pytest.mark.parametrize("raw", ["0", "-5", "Infinity"])
def test_monitor_amount_must_be_positive(raw):
    with pytest.raises(ConfigError) as exc:
        load_monitor_config({"GALA_MONITOR_AMOUNT": raw})
    assert "GALA_MONITOR_AMOUNT" in str(exc.value)
