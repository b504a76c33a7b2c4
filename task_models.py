from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Float
from sqlalchemy.orm import relationship

from models import Base, UserDB


class TaskDB(Base):
    __tablename__ = "tasks"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    board_id = Column(Integer, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000))
    status = Column(String(50), nullable=False, default="not-started")  # not-started, in-progress, completed
    priority = Column(String(50), nullable=False, default="medium")  # low, medium, high
    assignee_id = Column(Integer)
    # Datumsfelder als "YYYY-MM-DD" Strings
    due_date = Column(String(10))
    start_date = Column(String(10))
    estimated_hours = Column(Integer, default=0)
    actual_hours = Column(Integer, default=0)
    position = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)

    # Keine Foreign Keys in der Datenbank, die Verknüpfung läuft nur über die Namenskonvention
    assignee = relationship(
        UserDB,
        primaryjoin="foreign(TaskDB.assignee_id) == UserDB.id",
        viewonly=True,
        lazy="joined",
    )


class TimeEntryDB(Base):
    __tablename__ = "time_entries"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    task_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False)
    description = Column(String(1000))
    hours = Column(Float, nullable=False)
    date = Column(String(10), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
