from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.deps import resolve_today
from db.database import get_db
from services.goal_service import GoalNotFoundError, get_goal, sync_completion_badge
from services.ledger_service import DayRecord, get_day_record, toggle_completion, update_note
from utils.datetime_utils import InvalidDateError, format_date, format_day_context, format_display_date

router = APIRouter(prefix="/goals/{goal_id}/days", tags=["days"])


class NoteUpdateRequest(BaseModel):
    note: str = Field(default="", max_length=2000)


def _day_to_dict(goal, day: str, record: Optional[DayRecord]) -> dict:
    record = record or DayRecord()
    return {
        "goal_id": goal.id,
        "date": day,
        "display_date": format_display_date(day),
        "context": format_day_context(goal.start_date, goal.end_date, day),
        "is_completed": record.is_completed,
        "completed_at": record.completed_at.isoformat() if record.completed_at else None,
        "note": record.note,
    }


@router.get("/{day}")
def read_day(
    goal_id: str,
    day: str,
    db: Session = Depends(get_db),
):
    try:
        goal = get_goal(db, goal_id)
        key = format_date(day)
    except GoalNotFoundError:
        raise HTTPException(status_code=404, detail="Goal not found")
    except InvalidDateError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return _day_to_dict(goal, key, get_day_record(db, goal_id, key))


@router.post("/{day}/toggle")
def toggle_day(
    goal_id: str,
    day: str,
    today: Optional[str] = None,
    db: Session = Depends(get_db),
):
    try:
        goal = get_goal(db, goal_id)
        key = format_date(day)
        completed = toggle_completion(db, goal_id, key, today=resolve_today(today))
        goal_completed = sync_completion_badge(db, goal_id)
    except GoalNotFoundError:
        raise HTTPException(status_code=404, detail="Goal not found")
    except InvalidDateError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.commit()
    payload = _day_to_dict(goal, key, get_day_record(db, goal_id, key))
    payload["is_completed"] = completed
    payload["goal_is_completed"] = goal_completed
    return payload


@router.put("/{day}/note")
def put_note(
    goal_id: str,
    day: str,
    req: NoteUpdateRequest,
    db: Session = Depends(get_db),
):
    try:
        goal = get_goal(db, goal_id)
        key = format_date(day)
        record = update_note(db, goal_id, key, req.note)
    except GoalNotFoundError:
        raise HTTPException(status_code=404, detail="Goal not found")
    except InvalidDateError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.commit()
    return _day_to_dict(goal, key, record)
