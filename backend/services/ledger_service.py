from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from db.models import DayEntry, Goal
from services.ledger_types import CompletionLedger, DayRecord, is_completed  # noqa: F401
from utils.datetime_utils import DateLike, format_date, parse_date, utcnow

logger = logging.getLogger(__name__)


class GoalNotFoundError(LookupError):
    """Raised when no goal exists for an id."""

    def __init__(self, goal_id: str):
        super().__init__(f"Goal not found: {goal_id}")
        self.goal_id = goal_id


def _record_from_row(row: DayEntry) -> DayRecord:
    return DayRecord(
        is_completed=bool(row.is_completed),
        completed_at=row.completed_at,
        note=row.note or "",
    )


def _entry_row(db: Session, goal_id: str, day: str) -> DayEntry | None:
    return (
        db.query(DayEntry)
        .filter(DayEntry.goal_id == goal_id, DayEntry.date == day)
        .first()
    )


def _require_goal(db: Session, goal_id: str) -> Goal:
    goal = db.query(Goal).filter(Goal.id == goal_id).first()
    if not goal:
        raise GoalNotFoundError(goal_id)
    return goal


def get_day_record(db: Session, goal_id: str, day: DateLike) -> DayRecord | None:
    row = _entry_row(db, goal_id, format_date(day))
    return _record_from_row(row) if row else None


def records_for_goal(db: Session, goal_id: str) -> dict[str, DayRecord]:
    rows = (
        db.query(DayEntry)
        .filter(DayEntry.goal_id == goal_id)
        .order_by(DayEntry.date.asc())
        .all()
    )
    return {str(row.date): _record_from_row(row) for row in rows}


def load_ledger(db: Session, goal_id: str) -> dict[tuple[str, str], DayRecord]:
    """Snapshot of a goal's records, keyed the way the aggregator and grid builder read them."""
    return {(goal_id, day): record for day, record in records_for_goal(db, goal_id).items()}


def _editable_day(goal: Goal, day: DateLike, today_value: DateLike | None) -> str:
    key = format_date(day)
    if not (goal.start_date <= key <= goal.end_date):
        logger.warning("Rejected edit outside goal range: goal=%s date=%s", goal.id, key)
        raise ValueError(f"{key} is outside the goal's date range")
    if today_value is not None and parse_date(key) > parse_date(today_value):
        logger.warning("Rejected edit of a future day: goal=%s date=%s", goal.id, key)
        raise ValueError("Future days cannot be edited")
    return key


def toggle_completion(
    db: Session,
    goal_id: str,
    day: DateLike,
    *,
    today: DateLike | None = None,
    now: datetime | None = None,
) -> bool:
    """Flip a day's completion flag and return the new state."""
    goal = _require_goal(db, goal_id)
    key = _editable_day(goal, day, today)
    row = _entry_row(db, goal_id, key)
    if row is None:
        row = DayEntry(goal_id=goal_id, date=key, is_completed=False, note="")
        db.add(row)
    completed = not bool(row.is_completed)
    row.is_completed = completed
    row.completed_at = (now or utcnow()) if completed else None
    db.flush()
    logger.info("Toggled day: goal=%s date=%s completed=%s", goal_id, key, completed)
    return completed


def update_note(db: Session, goal_id: str, day: DateLike, note: str) -> DayRecord:
    goal = _require_goal(db, goal_id)
    key = _editable_day(goal, day, None)
    row = _entry_row(db, goal_id, key)
    if row is None:
        row = DayEntry(goal_id=goal_id, date=key, is_completed=False)
        db.add(row)
    row.note = (note or "").strip()
    db.flush()
    logger.info("Updated note: goal=%s date=%s", goal_id, key)
    return _record_from_row(row)


def clear_goal_days(db: Session, goal_id: str) -> int:
    deleted = int(
        db.query(DayEntry)
        .filter(DayEntry.goal_id == goal_id)
        .delete(synchronize_session=False)
        or 0
    )
    logger.info("Cleared %s day entries for goal=%s", deleted, goal_id)
    return deleted
