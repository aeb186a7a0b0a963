"""
Strategy trade ledger.

Append-only JSONL record of every entry order, tagged with the strategy
that placed it and why. Writes are best-effort.
"""

from pathlib import Path
from typing import Optional

import orjson
import structlog

from edgebot.models.schemas import LedgerEntry

logger = structlog.get_logger()


class TradeLedger:

    def __init__(self, path: str = "strategy_ledger.jsonl"):
        self.path = Path(path)
        self._entries: dict[str, LedgerEntry] = {}
        self.logger = logger.bind(component="trade_ledger")

    def append(self, entry: LedgerEntry) -> None:
        """Record an entry in memory and append it to the ledger file."""
        self._entries[entry.order_id] = entry
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "ab") as f:
                f.write(orjson.dumps(entry.model_dump(mode="json")) + b"\n")
        except OSError as e:
            self.logger.warning("Failed to write ledger entry", order_id=entry.order_id, error=str(e))

    def get(self, order_id: str) -> Optional[LedgerEntry]:
        return self._entries.get(order_id)

    def __len__(self) -> int:
        return len(self._entries)
