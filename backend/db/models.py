from datetime import datetime
from sqlalchemy import (
    Column, Integer, Text, Boolean, ForeignKey, Index,
    DateTime,
)
from sqlalchemy.orm import relationship
from db.database import Base


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)  # max 30 chars
    color = Column(Text, nullable=False)  # hex from the neon palette
    start_date = Column(Text, nullable=False)  # YYYY-MM-DD
    end_date = Column(Text, nullable=False)  # YYYY-MM-DD
    is_archived = Column(Boolean, nullable=False, default=False)
    is_completed = Column(Boolean, nullable=False, default=False)  # 100% badge
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    day_entries = relationship("DayEntry", back_populates="goal", cascade="all, delete-orphan")


class DayEntry(Base):
    __tablename__ = "day_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    goal_id = Column(Text, ForeignKey("goals.id"), nullable=False)
    date = Column(Text, nullable=False)  # YYYY-MM-DD
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)
    note = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    goal = relationship("Goal", back_populates="day_entries")


# Indexes
Index("idx_goals_archived_order", Goal.is_archived, Goal.sort_order)
Index("idx_day_entries_goal_date", DayEntry.goal_id, DayEntry.date, unique=True)
