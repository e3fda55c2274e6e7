from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from utils.datetime_utils import DateLike, date_range


@dataclass(frozen=True)
class RangeDay:
    date: str
    index: int
    is_last_day_of_goal: bool = False


@dataclass(frozen=True)
class DateRange:
    """Ordered, inclusive day sequence of a goal. Empty is a valid value."""

    days: tuple[RangeDay, ...] = ()

    def __len__(self) -> int:
        return len(self.days)

    def __iter__(self) -> Iterator[RangeDay]:
        return iter(self.days)

    def __bool__(self) -> bool:
        return bool(self.days)

    @property
    def dates(self) -> list[str]:
        return [day.date for day in self.days]

    @property
    def start(self) -> str | None:
        return self.days[0].date if self.days else None

    @property
    def end(self) -> str | None:
        return self.days[-1].date if self.days else None

    def __contains__(self, value: object) -> bool:
        if not self.days or not isinstance(value, str):
            return False
        return self.days[0].date <= value <= self.days[-1].date


EMPTY_RANGE = DateRange()


def expand_dates(start_date: DateLike, end_date: DateLike) -> DateRange:
    """
    Expand an inclusive start/end pair into its day sequence.

    Raises InvalidDateError for malformed dates or start > end; nothing is
    built in that case.
    """
    dates = date_range(start_date, end_date)
    last = len(dates) - 1
    return DateRange(
        days=tuple(
            RangeDay(date=value, index=idx, is_last_day_of_goal=idx == last)
            for idx, value in enumerate(dates)
        )
    )


def expand_range(goal: Any) -> DateRange:
    return expand_dates(goal.start_date, goal.end_date)
