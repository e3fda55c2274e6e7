from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping


@dataclass(frozen=True)
class DayRecord:
    is_completed: bool = False
    completed_at: datetime | None = None
    note: str = ""


# (goal_id, YYYY-MM-DD) -> DayRecord. A missing key means "not completed".
CompletionLedger = Mapping[tuple[str, str], DayRecord]


def is_completed(ledger: CompletionLedger, goal_id: str, day: str) -> bool:
    record = ledger.get((goal_id, day))
    return bool(record and record.is_completed)
