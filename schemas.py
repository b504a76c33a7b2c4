import datetime
import re
from typing import Any, List, Literal, Optional

import bleach
from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_serializer
from pydantic.alias_generators import to_camel

TaskStatus = Literal["not-started", "in-progress", "completed"]
TaskPriority = Literal["low", "medium", "high"]

TASK_STATUSES = ("not-started", "in-progress", "completed")
PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}
DEFAULT_BOARD_COLOR = "#0073EA"
HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def sanitize(value: Optional[str]) -> Optional[str]:
    if value:
        # Bleach entfernt alle HTML-Tags (tags=[]) und Attribute
        return bleach.clean(value, tags=[], attributes={}, strip=True)
    return value


def check_iso_date(value: Optional[str]) -> Optional[str]:
    """Accept ``YYYY-MM-DD`` strings; an empty string counts as no date."""
    if value is None or value == "":
        return None
    # fromisoformat allein akzeptiert ab 3.11 auch Wochendaten wie 2024-W50-1
    if not ISO_DATE_PATTERN.match(value):
        raise ValueError("must be a date in YYYY-MM-DD format")
    try:
        datetime.date.fromisoformat(value)
    except ValueError:
        raise ValueError("must be a date in YYYY-MM-DD format")
    return value


class CamelModel(BaseModel):
    """Snake_case attributes in Python, camelCase keys on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def reject_null(value, info):
    if value is None:
        raise ValueError(f"{info.field_name} may not be null")
    return value


# --- User Models ---
class UserCreate(CamelModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    avatar: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def sanitize_input(cls, v: Optional[str]) -> Optional[str]:
        return sanitize(v)


class User(CamelModel):
    id: int
    username: str
    name: str
    email: str
    avatar: Optional[str] = None


# --- Board Models ---
class BoardCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    color: str = Field(default=DEFAULT_BOARD_COLOR, pattern=HEX_COLOR_PATTERN)
    status: str = Field(default="active", min_length=1, max_length=50)
    created_by: int

    @field_validator("name", "description")
    @classmethod
    def sanitize_input(cls, v: Optional[str]) -> Optional[str]:
        return sanitize(v)


class BoardUpdate(CamelModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    status: Optional[str] = Field(default=None, min_length=1, max_length=50)
    created_by: Optional[int] = None

    @field_validator("name", "color", "status", "created_by")
    @classmethod
    def not_null(cls, v, info):
        return reject_null(v, info)

    @field_validator("name", "description")
    @classmethod
    def sanitize_input(cls, v: Optional[str]) -> Optional[str]:
        return sanitize(v)


class Board(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    color: str = DEFAULT_BOARD_COLOR
    status: str = "active"
    created_by: int


# --- Task Models ---
class TaskCreate(CamelModel):
    board_id: int = 1  # ohne Angabe landet die Aufgabe im ersten Board
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: TaskStatus = "not-started"
    priority: TaskPriority = "medium"
    assignee_id: Optional[int] = None
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    estimated_hours: Optional[int] = Field(default=0, ge=0)
    actual_hours: Optional[int] = Field(default=0, ge=0)
    position: int = 0
    completed: bool = False

    @field_validator("name", "description")
    @classmethod
    def sanitize_input(cls, v: Optional[str]) -> Optional[str]:
        return sanitize(v)

    @field_validator("due_date", "start_date")
    @classmethod
    def check_dates(cls, v: Optional[str]) -> Optional[str]:
        return check_iso_date(v)

    @field_validator("estimated_hours", "actual_hours")
    @classmethod
    def zero_if_missing(cls, v: Optional[int]) -> int:
        return v or 0


class TaskUpdate(CamelModel):
    model_config = ConfigDict(extra="ignore")

    board_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assignee_id: Optional[int] = None
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    estimated_hours: Optional[int] = Field(default=None, ge=0)
    actual_hours: Optional[int] = Field(default=None, ge=0)
    position: Optional[int] = None
    completed: Optional[bool] = None

    @field_validator("board_id", "name", "status", "priority", "position", "completed")
    @classmethod
    def not_null(cls, v, info):
        return reject_null(v, info)

    @field_validator("name", "description")
    @classmethod
    def sanitize_input(cls, v: Optional[str]) -> Optional[str]:
        return sanitize(v)

    @field_validator("due_date", "start_date")
    @classmethod
    def check_dates(cls, v: Optional[str]) -> Optional[str]:
        return check_iso_date(v)

    @field_validator("estimated_hours", "actual_hours")
    @classmethod
    def zero_if_null(cls, v: Optional[int]) -> int:
        return v or 0


class Task(CamelModel):
    id: int
    board_id: int
    name: str
    description: Optional[str] = None
    status: str = "not-started"
    priority: str = "medium"
    assignee_id: Optional[int] = None
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    estimated_hours: int = 0
    actual_hours: int = 0
    position: int = 0
    completed: bool = False


class TaskWithAssignee(Task):
    assignee: Optional[User] = None

    @model_serializer(mode="wrap")
    def drop_missing_assignee(self, handler) -> Any:
        data = handler(self)
        if data.get("assignee") is None:
            data.pop("assignee", None)
        return data


class BoardWithTasks(Board):
    tasks: List[TaskWithAssignee] = []


class TaskPositions(CamelModel):
    task_ids: List[StrictInt]


# --- Time Tracking Models ---
class TimeEntryCreate(CamelModel):
    task_id: int
    user_id: int
    description: Optional[str] = Field(default=None, max_length=1000)
    hours: float = Field(ge=0)  # immer Stunden, nie Minuten
    date: str = Field(default_factory=lambda: datetime.date.today().isoformat())

    @field_validator("description")
    @classmethod
    def sanitize_input(cls, v: Optional[str]) -> Optional[str]:
        return sanitize(v)

    @field_validator("date")
    @classmethod
    def check_date(cls, v: str) -> str:
        checked = check_iso_date(v)
        if checked is None:
            raise ValueError("date is required")
        return checked


class TimeEntry(CamelModel):
    id: int
    task_id: int
    user_id: int
    description: Optional[str] = None
    hours: float
    date: str
    created_at: Optional[datetime.datetime] = None
