from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

from services.ledger_types import CompletionLedger, is_completed
from services.range_service import DateRange, expand_range
from utils.datetime_utils import DateLike, format_date, iso_week_key, parse_date


@dataclass(frozen=True)
class DerivedStats:
    percentage: int = 0
    time_elapsed_percentage: int = 0
    days_remaining: int = 0
    days_elapsed: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    completion_rate: int = 0
    total_completed: int = 0
    total_missed: int = 0
    total_days: int = 0
    average_completions_per_week: float = 0.0
    best_week_completions: int = 0
    best_week_label: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def _pct(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        return 0
    return int(_round_half_up((numerator / denominator) * 100.0))


def _current_streak(countable: list[str], flags: list[bool], today: str) -> int:
    """Consecutive completed days ending today; an unfinished today is skipped once."""
    streak = 0
    for idx in range(len(countable) - 1, -1, -1):
        if flags[idx]:
            streak += 1
            continue
        if countable[idx] == today and idx > 0:
            continue
        break
    return streak


def _longest_streak(flags: list[bool]) -> int:
    longest = 0
    running = 0
    for done in flags:
        if done:
            running += 1
            longest = max(longest, running)
        else:
            running = 0
    return longest


def _weekly_rollup(countable: list[str], flags: list[bool]) -> tuple[float, int, str]:
    if not countable:
        return 0.0, 0, ""
    # dict keeps first-seen order, so the earliest week wins a tie below.
    weeks: dict[tuple[int, int], list[Any]] = {}
    for day, done in zip(countable, flags):
        key = iso_week_key(day)
        bucket = weeks.setdefault(key, [0, f"Week {key[1]}"])
        if done:
            bucket[0] += 1
    counts = list(weeks.values())
    total = sum(count for count, _label in counts)
    average = _round_half_up(total / len(counts), 1)
    best_count, best_label = counts[0]
    for count, label in counts[1:]:
        if count > best_count:
            best_count, best_label = count, label
    return average, int(best_count), str(best_label)


def aggregate_progress(
    expanded: DateRange,
    goal_id: str,
    ledger: CompletionLedger,
    today: DateLike,
) -> DerivedStats:
    """
    Derive all progress statistics for one goal from its day sequence.

    Only dates on or before ``today`` are countable. The ledger is read, never
    written, and no state survives the call.
    """
    today_key = format_date(today)
    if not expanded:
        return DerivedStats()

    dates = expanded.dates
    total_days = len(dates)
    countable = [day for day in dates if day <= today_key]
    flags = [is_completed(ledger, goal_id, day) for day in countable]
    completed_count = sum(1 for done in flags if done)

    today_in_range = today_key in expanded
    past_flags = flags[:-1] if today_in_range else flags
    past_days = len(past_flags)
    total_missed = sum(1 for done in past_flags if not done)

    start_day = parse_date(dates[0])
    end_day = parse_date(dates[-1])
    today_day = parse_date(today_key)

    raw_elapsed = (today_day - start_day).days + 1
    if raw_elapsed <= 0:
        time_elapsed_pct = 0
    elif raw_elapsed >= total_days:
        time_elapsed_pct = 100
    else:
        time_elapsed_pct = _pct(raw_elapsed, total_days)
    days_elapsed = max(0, min(raw_elapsed, total_days))
    days_remaining = max(0, (end_day - today_day).days + 1)

    average, best_count, best_label = _weekly_rollup(countable, flags)

    return DerivedStats(
        percentage=_pct(completed_count, len(countable)),
        time_elapsed_percentage=time_elapsed_pct,
        days_remaining=days_remaining,
        days_elapsed=days_elapsed,
        current_streak=_current_streak(countable, flags, today_key),
        longest_streak=_longest_streak(flags),
        completion_rate=_pct(completed_count, past_days + (1 if today_in_range else 0)),
        total_completed=completed_count,
        total_missed=total_missed,
        total_days=total_days,
        average_completions_per_week=average,
        best_week_completions=best_count,
        best_week_label=best_label,
    )


def compute_stats(goal: Any, ledger: CompletionLedger, today: DateLike) -> DerivedStats:
    return aggregate_progress(expand_range(goal), str(goal.id), ledger, today)


def is_goal_fully_completed(goal: Any, ledger: CompletionLedger) -> bool:
    """True when every day of the goal, future days included, is completed."""
    goal_id = str(goal.id)
    return all(is_completed(ledger, goal_id, day.date) for day in expand_range(goal))
