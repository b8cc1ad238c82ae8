"""Tests for the JSON-lines swap history and activity log."""
import json
import logging

import pytest

from gswap_tools.activity import ActivityLog, JsonLinesLog, SwapHistory, SwapLogEntry, iso_now


def make_entry(**overrides):
    rec = {
        "timestamp": iso_now(),
        "direction": "buy",
        "amountIn": "5",
        "quotedAmountOut": "0.0002",
        "minAmountOut": "0.000198",
        "price": "0.00004",
        "feeTier": 10000,
        "slippageBps": 100,
        "txId": "tx-1",
        "transactionHash": "0xabc",
        "walletAddress": "eth|abc",
    }
    rec.update(overrides)
    return SwapLogEntry.from_record(rec)


def test_iso_now_format():
    stamp = iso_now()
    assert stamp.endswith("Z")
    assert len(stamp) == len("2024-01-01T00:00:00.000Z")


def test_history_appends_in_order(tmp_path):
    history = SwapHistory(tmp_path / "h.log")
    history.record(make_entry(txId="a"))
    history.record(make_entry(txId="b", direction="sell"))
    lines = (tmp_path / "h.log").read_text(encoding="utf-8").splitlines()
    assert [json.loads(l)["txId"] for l in lines] == ["a", "b"]
    assert [e.txId for e in history.entries()] == ["a", "b"]


def test_missing_file_reads_empty(tmp_path):
    assert list(JsonLinesLog(tmp_path / "nope.log").records()) == []
    assert SwapHistory(tmp_path / "nope.log").entries() == []


@pytest.mark.parametrize("rec", [
    [],
    {"direction": "buy"},
    {"direction": "buy", "amountIn": "x", "quotedAmountOut": "1"},
    {"direction": "buy", "amountIn": "NaN", "quotedAmountOut": "1"},
    {"direction": "hold", "amountIn": "1", "quotedAmountOut": "1"},
])
def test_from_record_rejects(rec):
    with pytest.raises(ValueError):
        SwapLogEntry.from_record(rec)


def test_sells_base():
    assert make_entry(direction="start").sells_base
    assert make_entry(direction="buy").sells_base
    assert not make_entry(direction="sell").sells_base
    assert not make_entry(direction="stop").sells_base


def test_activity_event_shape(tmp_path):
    activity = ActivityLog(tmp_path / "gswap.log")
    activity.event("swap_submitted", {"txId": "tx-1"})
    activity.event("heartbeat")
    first, second = list(activity.records())
    assert first["message"] == "swap_submitted"
    assert first["details"] == {"txId": "tx-1"}
    assert "details" not in second


def test_activity_write_failure_is_logged_not_raised(tmp_path, caplog):
    activity = ActivityLog(tmp_path)  # a directory cannot be opened for append
    with caplog.at_level(logging.ERROR, logger="gswap.activity"):
        activity.event("swap_failed")
    assert "Failed to write activity log" in caplog.text
