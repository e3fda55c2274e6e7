from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.deps import resolve_today
from db.database import get_db
from services.calendar_grid_service import build_dot_list, build_grid
from services.goal_service import (
    DURATION_PRESETS,
    GoalNotFoundError,
    MAX_NAME_LENGTH,
    archive_goal,
    create_goal,
    delete_goal,
    get_goal,
    goal_to_dict,
    list_active_goals,
    list_archived_goals,
    reorder_goals,
    unarchive_goal,
    update_goal,
)
from services.ledger_service import load_ledger
from services.progress_service import compute_stats
from utils.datetime_utils import InvalidDateError

router = APIRouter(prefix="/goals", tags=["goals"])


class GoalCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    color: str
    start_date: str
    end_date: Optional[str] = None
    duration_days: Optional[int] = Field(default=None, ge=1)


class GoalUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    color: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class GoalReorderRequest(BaseModel):
    ordered_ids: list[str]


def _load_goal(db: Session, goal_id: str):
    try:
        return get_goal(db, goal_id)
    except GoalNotFoundError:
        raise HTTPException(status_code=404, detail="Goal not found")


@router.get("")
def list_goals(
    status: str = "active",
    db: Session = Depends(get_db),
):
    if status == "archived":
        goals = list_archived_goals(db)
    elif status == "all":
        goals = list_active_goals(db) + list_archived_goals(db)
    else:
        goals = list_active_goals(db)
    return [goal_to_dict(g) for g in goals]


@router.get("/presets")
def duration_presets():
    return list(DURATION_PRESETS)


@router.post("", status_code=201)
def create(
    req: GoalCreateRequest,
    db: Session = Depends(get_db),
):
    try:
        goal = create_goal(
            db,
            name=req.name,
            color=req.color,
            start_date=req.start_date,
            end_date=req.end_date,
            duration_days=req.duration_days,
        )
    except InvalidDateError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.commit()
    db.refresh(goal)
    return goal_to_dict(goal)


@router.put("/order")
def reorder(
    req: GoalReorderRequest,
    db: Session = Depends(get_db),
):
    goals = reorder_goals(db, req.ordered_ids)
    db.commit()
    return [goal_to_dict(g) for g in goals]


@router.get("/{goal_id}")
def read(
    goal_id: str,
    db: Session = Depends(get_db),
):
    return goal_to_dict(_load_goal(db, goal_id))


@router.put("/{goal_id}")
def update(
    goal_id: str,
    req: GoalUpdateRequest,
    db: Session = Depends(get_db),
):
    try:
        goal = update_goal(
            db,
            goal_id,
            name=req.name,
            color=req.color,
            start_date=req.start_date,
            end_date=req.end_date,
        )
    except GoalNotFoundError:
        raise HTTPException(status_code=404, detail="Goal not found")
    except InvalidDateError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.commit()
    db.refresh(goal)
    return goal_to_dict(goal)


@router.post("/{goal_id}/archive")
def archive(
    goal_id: str,
    db: Session = Depends(get_db),
):
    _load_goal(db, goal_id)
    goal = archive_goal(db, goal_id)
    db.commit()
    return goal_to_dict(goal)


@router.post("/{goal_id}/unarchive")
def unarchive(
    goal_id: str,
    db: Session = Depends(get_db),
):
    _load_goal(db, goal_id)
    goal = unarchive_goal(db, goal_id)
    db.commit()
    return goal_to_dict(goal)


@router.delete("/{goal_id}")
def delete(
    goal_id: str,
    db: Session = Depends(get_db),
):
    _load_goal(db, goal_id)
    delete_goal(db, goal_id)
    db.commit()
    return {"status": "deleted", "id": goal_id}


@router.get("/{goal_id}/stats")
def stats(
    goal_id: str,
    today: Optional[str] = None,
    db: Session = Depends(get_db),
):
    goal = _load_goal(db, goal_id)
    try:
        result = compute_stats(goal, load_ledger(db, goal.id), resolve_today(today))
    except InvalidDateError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return result.to_dict()


@router.get("/{goal_id}/grid")
def grid(
    goal_id: str,
    today: Optional[str] = None,
    db: Session = Depends(get_db),
):
    goal = _load_goal(db, goal_id)
    try:
        today_value = resolve_today(today)
        layout = build_grid(goal, load_ledger(db, goal.id), today_value)
    except InvalidDateError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    payload = layout.to_dict()
    payload["today_row_index"] = layout.row_index_for(today_value)
    return payload


@router.get("/{goal_id}/dots")
def dots(
    goal_id: str,
    today: Optional[str] = None,
    db: Session = Depends(get_db),
):
    goal = _load_goal(db, goal_id)
    try:
        cells = build_dot_list(goal, load_ledger(db, goal.id), resolve_today(today))
    except InvalidDateError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return [cell.to_dict() for cell in cells]
