"""
Append-only JSON-lines logs.
- swap history: one SwapLogEntry per completed swap, replayed for PnL
- activity log: submitted/confirmed/failed events, write-only audit trail
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .amounts import d

log = logging.getLogger("gswap.activity")

DIRECTIONS = ("buy", "sell", "start", "stop")


def iso_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


@dataclass(frozen=True)
class SwapLogEntry:
    timestamp: str
    direction: str
    amountIn: str
    quotedAmountOut: str
    minAmountOut: str
    price: str
    feeTier: int
    slippageBps: int
    txId: Optional[str]
    transactionHash: Optional[str]
    walletAddress: str

    @property
    def sells_base(self) -> bool:
        """start/buy swap the base asset into the quote asset."""
        return self.direction in ("start", "buy")

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "SwapLogEntry":
        """Raises ValueError for anything that cannot be replayed."""
        if not isinstance(rec, dict):
            raise ValueError("not an object")
        direction = rec.get("direction")
        if direction not in DIRECTIONS:
            raise ValueError(f"unknown direction {direction!r}")
        try:
            amounts = (d(rec["amountIn"]), d(rec["quotedAmountOut"]))
        except (KeyError, InvalidOperation) as e:
            raise ValueError(f"bad amounts: {e!r}")
        if not all(a.is_finite() for a in amounts):
            raise ValueError("non-finite amount")
        return cls(
            timestamp=str(rec.get("timestamp", "")),
            direction=direction,
            amountIn=str(rec["amountIn"]),
            quotedAmountOut=str(rec["quotedAmountOut"]),
            minAmountOut=str(rec.get("minAmountOut", "0")),
            price=str(rec.get("price", "0")),
            feeTier=int(rec.get("feeTier") or 0),
            slippageBps=int(rec.get("slippageBps") or 0),
            txId=rec.get("txId"),
            transactionHash=rec.get("transactionHash"),
            walletAddress=str(rec.get("walletAddress", "")),
        )


class JsonLinesLog:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def append(self, record: Dict[str, Any]) -> None:
        line = json.dumps(record, default=str)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def records(self) -> Iterator[Dict[str, Any]]:
        """Parsed objects in file order; blank and malformed lines are skipped."""
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError:
                    continue


class ActivityLog(JsonLinesLog):
    def event(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        entry: Dict[str, Any] = {"timestamp": iso_now(), "message": message}
        if details:
            entry["details"] = details
        try:
            self.append(entry)
        except OSError as e:
            log.error("Failed to write activity log: %s", e)


class SwapHistory(JsonLinesLog):
    def record(self, entry: SwapLogEntry) -> None:
        try:
            self.append(entry.to_record())
        except OSError as e:
            log.error("Failed to write swap log: %s", e)

    def entries(self) -> List[SwapLogEntry]:
        out: List[SwapLogEntry] = []
        for rec in self.records():
            try:
                out.append(SwapLogEntry.from_record(rec))
            except (ValueError, TypeError):
                continue
        return out
