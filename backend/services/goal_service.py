from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from db.models import Goal
from services.ledger_service import GoalNotFoundError, clear_goal_days, load_ledger
from services.progress_service import is_goal_fully_completed
from utils.datetime_utils import DateLike, calculate_end_date, day_count, format_date, parse_date, utcnow

logger = logging.getLogger(__name__)

__all__ = [
    "DURATION_PRESETS",
    "GoalNotFoundError",
    "MAX_NAME_LENGTH",
    "NEON_COLORS",
    "archive_goal",
    "create_goal",
    "delete_goal",
    "get_goal",
    "goal_to_dict",
    "list_active_goals",
    "list_archived_goals",
    "mark_goal_completed",
    "reorder_goals",
    "sync_completion_badge",
    "unarchive_goal",
    "update_goal",
]

MAX_NAME_LENGTH = 30

NEON_COLORS: dict[str, str] = {
    "violet": "#6C63FF",
    "teal": "#38B2AC",
    "coral": "#F97316",
    "rose": "#EC4899",
    "emerald": "#10B981",
    "amber": "#F59E0B",
    "gold": "#D4AF37",
    "sky": "#0EA5E9",
    "purple": "#8B5CF6",
}

DURATION_PRESETS: tuple[dict[str, Any], ...] = (
    {"label": "30 days", "days": 30},
    {"label": "90 days", "days": 90},
    {"label": "180 days", "days": 180},
    {"label": "365 days", "days": 365},
)


def _clean_name(name: str | None) -> str:
    value = (name or "").strip()
    if not value:
        raise ValueError("name must not be empty")
    if len(value) > MAX_NAME_LENGTH:
        raise ValueError(f"name must be at most {MAX_NAME_LENGTH} characters")
    return value


def _clean_color(color: str | None) -> str:
    value = (color or "").strip()
    if value.lower() in NEON_COLORS:
        return NEON_COLORS[value.lower()]
    upper = value.upper()
    if upper not in NEON_COLORS.values():
        raise ValueError(f"color must be one of {sorted(NEON_COLORS)}")
    return upper


def _resolve_window(start_date: DateLike, end_date: DateLike | None, duration_days: int | None) -> tuple[str, str]:
    start = format_date(start_date)
    if end_date is not None:
        end = format_date(end_date)
    elif duration_days is not None:
        end = calculate_end_date(start, int(duration_days))
    else:
        raise ValueError("either end_date or duration_days is required")
    if parse_date(end) < parse_date(start):
        raise ValueError("end_date must not be before start_date")
    return start, end


def goal_to_dict(goal: Goal) -> dict[str, Any]:
    return {
        "id": goal.id,
        "name": goal.name,
        "color": goal.color,
        "start_date": goal.start_date,
        "end_date": goal.end_date,
        "total_days": day_count(goal.start_date, goal.end_date),
        "is_archived": bool(goal.is_archived),
        "is_completed": bool(goal.is_completed),
        "order": int(goal.sort_order or 0),
        "created_at": goal.created_at.isoformat() if goal.created_at else None,
        "updated_at": goal.updated_at.isoformat() if goal.updated_at else None,
    }


def _next_order(db: Session) -> int:
    current = db.query(func.max(Goal.sort_order)).filter(Goal.is_archived.is_(False)).scalar()
    return 0 if current is None else int(current) + 1


def list_active_goals(db: Session) -> list[Goal]:
    return (
        db.query(Goal)
        .filter(Goal.is_archived.is_(False))
        .order_by(Goal.sort_order.asc(), Goal.created_at.asc())
        .all()
    )


def list_archived_goals(db: Session) -> list[Goal]:
    return (
        db.query(Goal)
        .filter(Goal.is_archived.is_(True))
        .order_by(Goal.updated_at.desc(), Goal.id.asc())
        .all()
    )


def get_goal(db: Session, goal_id: str) -> Goal:
    goal = db.query(Goal).filter(Goal.id == goal_id).first()
    if not goal:
        raise GoalNotFoundError(goal_id)
    return goal


def create_goal(
    db: Session,
    *,
    name: str,
    color: str,
    start_date: DateLike,
    end_date: DateLike | None = None,
    duration_days: int | None = None,
) -> Goal:
    start, end = _resolve_window(start_date, end_date, duration_days)
    now = utcnow()
    goal = Goal(
        id=uuid.uuid4().hex,
        name=_clean_name(name),
        color=_clean_color(color),
        start_date=start,
        end_date=end,
        is_archived=False,
        is_completed=False,
        sort_order=_next_order(db),
        created_at=now,
        updated_at=now,
    )
    db.add(goal)
    db.flush()
    logger.info("Created goal %s (%s..%s)", goal.id, start, end)
    return goal


def update_goal(
    db: Session,
    goal_id: str,
    *,
    name: str | None = None,
    color: str | None = None,
    start_date: DateLike | None = None,
    end_date: DateLike | None = None,
) -> Goal:
    goal = get_goal(db, goal_id)
    if name is not None:
        goal.name = _clean_name(name)
    if color is not None:
        goal.color = _clean_color(color)
    if start_date is not None or end_date is not None:
        start, end = _resolve_window(
            start_date if start_date is not None else goal.start_date,
            end_date if end_date is not None else goal.end_date,
            None,
        )
        goal.start_date = start
        goal.end_date = end
    goal.updated_at = utcnow()
    db.flush()
    return goal


def archive_goal(db: Session, goal_id: str) -> Goal:
    goal = get_goal(db, goal_id)
    goal.is_archived = True
    goal.updated_at = utcnow()
    db.flush()
    logger.info("Archived goal %s", goal_id)
    return goal


def unarchive_goal(db: Session, goal_id: str) -> Goal:
    goal = get_goal(db, goal_id)
    if goal.is_archived:
        goal.sort_order = _next_order(db)
        goal.is_archived = False
        goal.updated_at = utcnow()
        db.flush()
        logger.info("Unarchived goal %s", goal_id)
    return goal


def reorder_goals(db: Session, ordered_ids: list[str]) -> list[Goal]:
    """Apply the given order; ids not listed keep their position value."""
    positions = {goal_id: idx for idx, goal_id in enumerate(ordered_ids)}
    for goal in db.query(Goal).filter(Goal.id.in_(list(positions))).all():
        goal.sort_order = positions[goal.id]
    db.flush()
    return list_active_goals(db)


def mark_goal_completed(db: Session, goal_id: str) -> Goal:
    goal = get_goal(db, goal_id)
    if not goal.is_completed:
        goal.is_completed = True
        goal.updated_at = utcnow()
        db.flush()
        logger.info("Goal %s reached 100%%", goal_id)
    return goal


def sync_completion_badge(db: Session, goal_id: str) -> bool:
    """Set the 100% badge once every day of the goal is completed. The badge is never removed."""
    goal = get_goal(db, goal_id)
    if not goal.is_completed and is_goal_fully_completed(goal, load_ledger(db, goal_id)):
        mark_goal_completed(db, goal_id)
    return bool(goal.is_completed)


def delete_goal(db: Session, goal_id: str) -> None:
    goal = get_goal(db, goal_id)
    clear_goal_days(db, goal_id)
    db.delete(goal)
    db.flush()
    logger.info("Deleted goal %s", goal_id)
