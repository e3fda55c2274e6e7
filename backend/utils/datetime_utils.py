import re
from datetime import datetime, date, timedelta, timezone
from zoneinfo import ZoneInfo


_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DateLike = str | date


class InvalidDateError(ValueError):
    """Raised when a value is not a YYYY-MM-DD calendar date or a range is inverted."""


def parse_date(value: DateLike) -> date:
    """Parse a strict YYYY-MM-DD string (or pass through a date)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value.strip()):
        raise InvalidDateError(f"Not a YYYY-MM-DD date: {value!r}")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidDateError(f"Not a calendar date: {value!r}") from exc


def format_date(value: DateLike) -> str:
    return parse_date(value).isoformat()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def today_for_tz(tz_name: str | None) -> date:
    """Return today's date in the given timezone, or the local calendar when unset."""
    if tz_name:
        try:
            return datetime.now(ZoneInfo(tz_name)).date()
        except Exception:
            return today_utc()
    return date.today()


def today(tz_name: str | None = None) -> str:
    return format_date(today_for_tz(tz_name))


def _resolve_today(today_value: DateLike | None) -> date:
    if today_value is None:
        return date.today()
    return parse_date(today_value)


def is_past(value: DateLike, today_value: DateLike | None = None) -> bool:
    return parse_date(value) < _resolve_today(today_value)


def is_today(value: DateLike, today_value: DateLike | None = None) -> bool:
    return parse_date(value) == _resolve_today(today_value)


def is_future(value: DateLike, today_value: DateLike | None = None) -> bool:
    return parse_date(value) > _resolve_today(today_value)


def date_range(start: DateLike, end: DateLike) -> list[str]:
    """Every date from start to end, inclusive, in order."""
    start_day = parse_date(start)
    end_day = parse_date(end)
    if start_day > end_day:
        raise InvalidDateError(f"Range start {start_day.isoformat()} is after end {end_day.isoformat()}")
    return [
        (start_day + timedelta(days=offset)).isoformat()
        for offset in range((end_day - start_day).days + 1)
    ]


def add_days(value: DateLike, n: int) -> str:
    return (parse_date(value) + timedelta(days=n)).isoformat()


def day_of_week_index(value: DateLike) -> int:
    """0 = Monday .. 6 = Sunday."""
    return parse_date(value).weekday()


def start_of_week(d: date) -> date:
    """Return Monday of the week containing d."""
    return d - timedelta(days=d.weekday())


def monday_of(value: DateLike) -> str:
    return start_of_week(parse_date(value)).isoformat()


def thursday_of(value: DateLike) -> str:
    """Thursday of the Monday-starting week containing value."""
    return (start_of_week(parse_date(value)) + timedelta(days=3)).isoformat()


def start_of_month(d: date) -> date:
    return d.replace(day=1)


def first_of_month(value: DateLike) -> str:
    return start_of_month(parse_date(value)).isoformat()


def iso_week_key(value: DateLike) -> tuple[int, int]:
    """(ISO week-year, ISO week number)."""
    iso = parse_date(value).isocalendar()
    return (iso[0], iso[1])


def day_count(start: DateLike, end: DateLike) -> int:
    """Number of days between two dates, inclusive of both ends."""
    return (parse_date(end) - parse_date(start)).days + 1


def day_number(start: DateLike, current: DateLike) -> int:
    """1-indexed position of current within a range beginning at start."""
    return (parse_date(current) - parse_date(start)).days + 1


def calculate_end_date(start: DateLike, days: int) -> str:
    if int(days) < 1:
        raise ValueError("days must be at least 1")
    # The start day counts as day one.
    return add_days(start, int(days) - 1)


def format_display_date(value: DateLike) -> str:
    """e.g. "Monday, Jan 15"."""
    d = parse_date(value)
    return f"{d.strftime('%A, %b')} {d.day}"


def format_day_context(start: DateLike, end: DateLike, current: DateLike) -> str:
    """e.g. "Day 45 of 180"."""
    return f"Day {day_number(start, current)} of {day_count(start, end)}"
