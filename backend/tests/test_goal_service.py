"""Tests for the goal repository and the day ledger store."""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from db.database import Base  # noqa: E402
from db.models import DayEntry  # noqa: E402
from services.goal_service import (  # noqa: E402
    GoalNotFoundError,
    archive_goal,
    create_goal,
    delete_goal,
    get_goal,
    list_active_goals,
    list_archived_goals,
    reorder_goals,
    sync_completion_badge,
    unarchive_goal,
    update_goal,
)
from services.ledger_service import (  # noqa: E402
    get_day_record,
    load_ledger,
    records_for_goal,
    toggle_completion,
    update_note,
)
from services.progress_service import compute_stats  # noqa: E402
from utils.datetime_utils import InvalidDateError  # noqa: E402


def _new_db():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


def _new_goal(db, name: str = "Run", **kwargs):
    params = {"color": "violet", "start_date": "2024-01-01", "end_date": "2024-01-10"}
    params.update(kwargs)
    goal = create_goal(db, name=name, **params)
    db.commit()
    return goal


# ─── Goal repository ───


def test_create_goal_from_duration_preset():
    db = _new_db()
    goal = create_goal(db, name="  Journal  ", color="#38b2ac", start_date="2024-01-01", duration_days=30)
    db.commit()

    assert goal.name == "Journal"
    assert goal.color == "#38B2AC"
    assert goal.end_date == "2024-01-30"
    assert goal.is_archived is False
    assert goal.is_completed is False


def test_create_goal_validation():
    db = _new_db()
    with pytest.raises(ValueError):
        create_goal(db, name="x" * 31, color="violet", start_date="2024-01-01", duration_days=30)
    with pytest.raises(ValueError):
        create_goal(db, name="Walk", color="chartreuse", start_date="2024-01-01", duration_days=30)
    with pytest.raises(ValueError):
        create_goal(db, name="Walk", color="violet", start_date="2024-01-01")
    with pytest.raises(ValueError):
        create_goal(db, name="Walk", color="violet", start_date="2024-01-10", end_date="2024-01-01")
    with pytest.raises(InvalidDateError):
        create_goal(db, name="Walk", color="violet", start_date="01/01/2024", duration_days=30)


def test_new_goals_append_to_active_order_and_can_be_reordered():
    db = _new_db()
    a = _new_goal(db, "A")
    b = _new_goal(db, "B")
    c = _new_goal(db, "C")
    assert [g.name for g in list_active_goals(db)] == ["A", "B", "C"]

    reorder_goals(db, [c.id, a.id, b.id])
    db.commit()
    assert [g.name for g in list_active_goals(db)] == ["C", "A", "B"]


def test_archive_and_unarchive():
    db = _new_db()
    a = _new_goal(db, "A")
    _new_goal(db, "B")

    archive_goal(db, a.id)
    db.commit()
    assert [g.name for g in list_active_goals(db)] == ["B"]
    assert [g.name for g in list_archived_goals(db)] == ["A"]

    unarchive_goal(db, a.id)
    db.commit()
    assert [g.name for g in list_active_goals(db)] == ["B", "A"]
    assert list_archived_goals(db) == []


def test_update_goal_dates_are_validated():
    db = _new_db()
    goal = _new_goal(db)

    update_goal(db, goal.id, name="Run daily", end_date="2024-02-10")
    db.commit()
    assert get_goal(db, goal.id).end_date == "2024-02-10"
    assert get_goal(db, goal.id).name == "Run daily"

    with pytest.raises(ValueError):
        update_goal(db, goal.id, end_date="2023-12-31")


def test_unknown_goal_raises_not_found():
    db = _new_db()
    with pytest.raises(GoalNotFoundError):
        get_goal(db, "missing")
    with pytest.raises(GoalNotFoundError):
        toggle_completion(db, "missing", "2024-01-01")


# ─── Day ledger ───


def test_toggle_sets_and_clears_completed_at():
    db = _new_db()
    goal = _new_goal(db)
    stamp = datetime(2024, 1, 2, 8, 30, tzinfo=timezone.utc)

    assert toggle_completion(db, goal.id, "2024-01-02", today="2024-01-05", now=stamp) is True
    db.commit()
    record = get_day_record(db, goal.id, "2024-01-02")
    assert record is not None and record.is_completed is True
    assert record.completed_at is not None

    assert toggle_completion(db, goal.id, "2024-01-02", today="2024-01-05") is False
    db.commit()
    record = get_day_record(db, goal.id, "2024-01-02")
    assert record.is_completed is False
    assert record.completed_at is None
    assert db.query(DayEntry).filter(DayEntry.goal_id == goal.id).count() == 1


def test_toggle_rejects_future_and_out_of_range_days():
    db = _new_db()
    goal = _new_goal(db)

    with pytest.raises(ValueError):
        toggle_completion(db, goal.id, "2024-01-06", today="2024-01-05")
    with pytest.raises(ValueError):
        toggle_completion(db, goal.id, "2023-12-31", today="2024-01-05")
    with pytest.raises(InvalidDateError):
        toggle_completion(db, goal.id, "2024-1-3", today="2024-01-05")


def test_note_does_not_complete_a_day():
    db = _new_db()
    goal = _new_goal(db)

    record = update_note(db, goal.id, "2024-01-03", "  felt tired  ")
    db.commit()

    assert record.note == "felt tired"
    assert record.is_completed is False
    assert records_for_goal(db, goal.id)["2024-01-03"].note == "felt tired"


def test_ledger_snapshot_feeds_the_aggregator():
    db = _new_db()
    goal = _new_goal(db)
    for day in ("2024-01-01", "2024-01-02", "2024-01-03"):
        toggle_completion(db, goal.id, day, today="2024-01-04")
    db.commit()

    ledger = load_ledger(db, goal.id)
    assert sorted(day for _gid, day in ledger) == ["2024-01-01", "2024-01-02", "2024-01-03"]

    stats = compute_stats(goal, ledger, "2024-01-04")
    assert stats.current_streak == 3
    assert stats.total_completed == 3


def test_completion_badge_set_once_every_day_is_done():
    db = _new_db()
    goal = _new_goal(db, end_date="2024-01-03")

    toggle_completion(db, goal.id, "2024-01-01", today="2024-01-03")
    assert sync_completion_badge(db, goal.id) is False
    toggle_completion(db, goal.id, "2024-01-02", today="2024-01-03")
    toggle_completion(db, goal.id, "2024-01-03", today="2024-01-03")
    assert sync_completion_badge(db, goal.id) is True
    db.commit()

    toggle_completion(db, goal.id, "2024-01-03", today="2024-01-03")
    assert sync_completion_badge(db, goal.id) is True


def test_delete_goal_clears_its_days():
    db = _new_db()
    goal = _new_goal(db)
    other = _new_goal(db, "Other")
    toggle_completion(db, goal.id, "2024-01-01")
    toggle_completion(db, other.id, "2024-01-01")
    db.commit()

    goal_id = goal.id
    other_id = other.id
    delete_goal(db, goal_id)
    db.commit()

    assert db.query(DayEntry).filter(DayEntry.goal_id == goal_id).count() == 0
    assert len(records_for_goal(db, other_id)) == 1
    with pytest.raises(GoalNotFoundError):
        get_goal(db, goal_id)
