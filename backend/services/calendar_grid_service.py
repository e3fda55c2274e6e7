"""
Month-by-week grid layout for a goal's day sequence.

Rows are calendar months, columns are Monday-starting weeks. A week's primary
home is the month holding its Thursday (so it always has at least four days
there), but a week with real days in two months is emitted into both rows,
each copy masking the other month's days as placeholders. Statistics never
read the grid.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from services.ledger_types import CompletionLedger, is_completed
from services.range_service import DateRange, expand_range
from utils.datetime_utils import DateLike, format_date, parse_date, start_of_week


MIN_COLUMNS = 5
PLACEHOLDER_RANGE = "range"  # outside the goal's date range
PLACEHOLDER_MONTH = "month"  # real goal day, but rendered in another month's row

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


@dataclass(frozen=True)
class DayCell:
    date: str | None = None
    is_completed: bool = False
    is_future: bool = False
    is_today: bool = False
    is_last_day_of_goal: bool = False
    placeholder: str | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.placeholder is not None

    @property
    def state(self) -> str | None:
        if self.is_placeholder:
            return None
        if self.is_completed:
            return "completed"
        if self.is_today:
            return "today"
        if self.is_future:
            return "future"
        return "missed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "is_completed": self.is_completed,
            "is_future": self.is_future,
            "is_today": self.is_today,
            "is_last_day_of_goal": self.is_last_day_of_goal,
            "is_placeholder": self.is_placeholder,
            "placeholder": self.placeholder,
            "state": self.state,
        }


RANGE_PLACEHOLDER = DayCell(placeholder=PLACEHOLDER_RANGE)
MONTH_PLACEHOLDER = DayCell(placeholder=PLACEHOLDER_MONTH)


@dataclass(frozen=True)
class WeekBucket:
    week_start_date: str
    days: tuple[DayCell, ...]
    owning_month: int  # 1-12, month of the week's Thursday
    owning_year: int
    week_of_month_index: int  # 0-based week within the owning month
    month: int  # month of the row this copy sits in
    year: int
    column_index: int

    @property
    def is_primary(self) -> bool:
        return (self.year, self.month) == (self.owning_year, self.owning_month)

    @property
    def real_days(self) -> list[DayCell]:
        return [cell for cell in self.days if not cell.is_placeholder]

    @property
    def completed_count(self) -> int:
        return sum(1 for cell in self.days if not cell.is_placeholder and cell.is_completed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_start_date": self.week_start_date,
            "days": [cell.to_dict() for cell in self.days],
            "owning_month": self.owning_month,
            "owning_year": self.owning_year,
            "week_of_month_index": self.week_of_month_index,
            "month": self.month,
            "year": self.year,
            "column_index": self.column_index,
            "is_primary": self.is_primary,
            "completed_count": self.completed_count,
        }


@dataclass(frozen=True)
class MonthRow:
    month_key: str  # "2024-01"
    month_label: str  # "Jan"
    year: int
    month: int
    cells: tuple[WeekBucket | None, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "month_key": self.month_key,
            "month_label": self.month_label,
            "year": self.year,
            "month": self.month,
            "cells": [cell.to_dict() if cell else None for cell in self.cells],
        }


@dataclass(frozen=True)
class Grid:
    """
    Month rows padded to a shared width.

    ``column_numbers`` are display columns, not week numbers. A row whose
    month opens with a leading partial week puts that week in column 0 and
    shifts its own weeks right by one, so there ``column_index`` is
    ``week_of_month_index + 1``.
    """

    column_numbers: tuple[int, ...]
    rows: tuple[MonthRow, ...]

    def row_index_for(self, value: DateLike) -> int | None:
        d = parse_date(value)
        for idx, row in enumerate(self.rows):
            if (row.year, row.month) == (d.year, d.month):
                return idx
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "column_numbers": list(self.column_numbers),
            "rows": [row.to_dict() for row in self.rows],
        }


def _first_thursday_monday(year: int, month: int) -> date:
    """Monday of the first week whose Thursday falls in the given month."""
    monday = start_of_week(date(year, month, 1))
    if (monday + timedelta(days=3)).month != month:
        monday += timedelta(days=7)
    return monday


def week_of_month(monday: date, year: int, month: int) -> int:
    """
    Weeks between the month's first Thursday-week and ``monday``.

    -1 for a leading partial week whose Thursday is still in the previous month.
    """
    return (monday - _first_thursday_monday(year, month)).days // 7


def _month_span(start: date, end: date) -> list[tuple[int, int]]:
    months: list[tuple[int, int]] = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append((year, month))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return months


def _day_cells(expanded: DateRange, goal_id: str, ledger: CompletionLedger, today: str) -> list[DayCell]:
    return [
        DayCell(
            date=day.date,
            is_completed=is_completed(ledger, goal_id, day.date),
            is_future=day.date > today,
            is_today=day.date == today,
            is_last_day_of_goal=day.is_last_day_of_goal,
        )
        for day in expanded
    ]


def layout_grid(
    expanded: DateRange,
    goal_id: str,
    ledger: CompletionLedger,
    today: DateLike,
) -> Grid:
    today_key = format_date(today)
    if not expanded:
        return Grid(column_numbers=tuple(range(1, MIN_COLUMNS + 1)), rows=())

    # 1. Partition into Monday-keyed weeks, slotted by weekday.
    weeks: dict[date, list[DayCell]] = {}
    for cell in _day_cells(expanded, goal_id, ledger, today_key):
        d = parse_date(cell.date)
        slots = weeks.setdefault(start_of_week(d), [RANGE_PLACEHOLDER] * 7)
        slots[d.weekday()] = cell

    # 2-4. Owning month by Thursday; one copy per month the week has real days in.
    placements: dict[tuple[int, int], list[tuple[int, date, tuple[DayCell, ...]]]] = {}
    owners: dict[date, tuple[int, int, int]] = {}
    for monday in sorted(weeks):
        slots = weeks[monday]
        thursday = monday + timedelta(days=3)
        owners[monday] = (thursday.year, thursday.month, week_of_month(monday, thursday.year, thursday.month))

        real_months: list[tuple[int, int]] = []
        for offset, cell in enumerate(slots):
            if cell.is_placeholder:
                continue
            d = monday + timedelta(days=offset)
            if (d.year, d.month) not in real_months:
                real_months.append((d.year, d.month))

        for year, month in real_months:
            masked = tuple(
                cell
                if cell.is_placeholder or (monday + timedelta(days=offset)).month == month
                else MONTH_PLACEHOLDER
                for offset, cell in enumerate(slots)
            )
            placements.setdefault((year, month), []).append(
                (week_of_month(monday, year, month), monday, masked)
            )

    # A row holding a leading partial week shifts right by one column.
    buckets: dict[tuple[int, int], list[WeekBucket]] = {}
    max_column = MIN_COLUMNS - 1
    for (year, month), entries in placements.items():
        shift = 1 if min(rel for rel, _monday, _days in entries) < 0 else 0
        for rel, monday, masked in entries:
            owning_year, owning_month, owning_index = owners[monday]
            column = rel + shift
            max_column = max(max_column, column)
            buckets.setdefault((year, month), []).append(
                WeekBucket(
                    week_start_date=monday.isoformat(),
                    days=masked,
                    owning_month=owning_month,
                    owning_year=owning_year,
                    week_of_month_index=owning_index,
                    month=month,
                    year=year,
                    column_index=column,
                )
            )

    # 5-6. Pad every row to the global width, chronological from start to end month.
    width = max_column + 1
    rows: list[MonthRow] = []
    for year, month in _month_span(parse_date(expanded.start), parse_date(expanded.end)):
        cells: list[WeekBucket | None] = [None] * width
        for bucket in buckets.get((year, month), []):
            cells[bucket.column_index] = bucket
        rows.append(
            MonthRow(
                month_key=f"{year}-{month:02d}",
                month_label=MONTH_NAMES[month - 1],
                year=year,
                month=month,
                cells=tuple(cells),
            )
        )
    return Grid(column_numbers=tuple(range(1, width + 1)), rows=tuple(rows))


def build_grid(goal: Any, ledger: CompletionLedger, today: DateLike) -> Grid:
    return layout_grid(expand_range(goal), str(goal.id), ledger, today)


def build_dot_list(goal: Any, ledger: CompletionLedger, today: DateLike) -> list[DayCell]:
    """Flat one-cell-per-day sequence for the non-weekly view."""
    return _day_cells(expand_range(goal), str(goal.id), ledger, format_date(today))
