"""
Storage backends for boards, tasks, users and time entries.

Both backends implement the same ``Storage`` contract and must behave the
same from the outside: reads and update/delete return ``None``/``False`` for
unknown ids instead of raising, tasks of a board come back ordered by
(position, id), and the HTTP layer turns absence into a 404.
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from auth_utils import hash_password
from models import UserDB, BoardDB
from task_models import TaskDB, TimeEntryDB
from schemas import (
    Board, BoardCreate, BoardUpdate, BoardWithTasks,
    Task, TaskCreate, TaskUpdate, TaskWithAssignee,
    TimeEntry, TimeEntryCreate,
    User, UserCreate,
)

logger = logging.getLogger(__name__)


class DuplicateUsernameError(ValueError):
    pass


# --- Fixture Data ---
SAMPLE_USERS = [
    {"username": "sarah.wilson", "password": "password", "name": "Sarah Wilson", "email": "sarah@company.com"},
    {"username": "mike.chen", "password": "password", "name": "Mike Chen", "email": "mike@company.com"},
    {"username": "emma.davis", "password": "password", "name": "Emma Davis", "email": "emma@company.com"},
    {"username": "john.doe", "password": "password", "name": "John Doe", "email": "john@company.com"},
    {"username": "lisa.johnson", "password": "password", "name": "Lisa Johnson", "email": "lisa@company.com"},
]

SAMPLE_BOARDS = [
    {"name": "Marketing Campaign", "description": "Q4 marketing initiatives", "color": "#0073EA", "status": "active", "created_by": 1},
    {"name": "Product Development", "description": "New feature development", "color": "#00C875", "status": "active", "created_by": 2},
    {"name": "Design System", "description": "UI/UX design components", "color": "#FF5AC4", "status": "active", "created_by": 3},
    {"name": "Sales Pipeline", "description": "Lead management and conversion", "color": "#FDAB3D", "status": "active", "created_by": 4},
]

SAMPLE_TASKS = [
    {"board_id": 1, "name": "Launch social media campaign", "description": "Create engaging content for Q4 launch",
     "status": "not-started", "priority": "high", "assignee_id": 1, "due_date": "2024-12-15", "position": 0},
    {"board_id": 1, "name": "Design banner assets", "description": "Create visual assets for campaign",
     "status": "completed", "priority": "medium", "assignee_id": 2, "due_date": "2024-12-10", "position": 1, "completed": True},
    {"board_id": 1, "name": "Write copy for landing page", "description": "Create compelling copy for campaign landing",
     "status": "in-progress", "priority": "low", "assignee_id": 3, "due_date": "2024-12-20", "position": 2},
    {"board_id": 1, "name": "Set up email automation", "description": "Configure email sequences for campaign",
     "status": "not-started", "priority": "high", "assignee_id": 4, "due_date": "2024-12-08", "position": 3},
    {"board_id": 1, "name": "Research target audience", "description": "Analyze demographics and preferences",
     "status": "completed", "priority": "medium", "assignee_id": 5, "due_date": "2024-12-05", "position": 4, "completed": True},
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Storage(ABC):
    """CRUD contract consumed by the request handlers."""

    # Users
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, data: UserCreate) -> User: ...

    @abstractmethod
    def get_all_users(self) -> List[User]: ...

    # Boards
    @abstractmethod
    def get_board(self, board_id: int) -> Optional[Board]: ...

    @abstractmethod
    def get_all_boards(self) -> List[Board]: ...

    @abstractmethod
    def create_board(self, data: BoardCreate) -> Board: ...

    @abstractmethod
    def update_board(self, board_id: int, patch: BoardUpdate) -> Optional[Board]: ...

    @abstractmethod
    def delete_board(self, board_id: int) -> bool: ...

    # Tasks
    @abstractmethod
    def get_task(self, task_id: int) -> Optional[Task]: ...

    @abstractmethod
    def get_task_with_assignee(self, task_id: int) -> Optional[TaskWithAssignee]: ...

    @abstractmethod
    def get_tasks_by_board(self, board_id: int) -> List[TaskWithAssignee]: ...

    @abstractmethod
    def create_task(self, data: TaskCreate) -> Task: ...

    @abstractmethod
    def update_task(self, task_id: int, patch: TaskUpdate) -> Optional[Task]: ...

    @abstractmethod
    def delete_task(self, task_id: int) -> bool: ...

    @abstractmethod
    def update_task_positions(self, task_ids: List[int]) -> None: ...

    # Time entries
    @abstractmethod
    def get_time_entry(self, entry_id: int) -> Optional[TimeEntry]: ...

    @abstractmethod
    def get_time_entries_by_task(self, task_id: int) -> List[TimeEntry]: ...

    @abstractmethod
    def create_time_entry(self, data: TimeEntryCreate) -> TimeEntry: ...

    @abstractmethod
    def delete_time_entry(self, entry_id: int) -> bool: ...

    # --- Composed operations (identical for every backend) ---

    def get_board_with_tasks(self, board_id: int) -> Optional[BoardWithTasks]:
        board = self.get_board(board_id)
        if board is None:
            return None
        return BoardWithTasks(**board.model_dump(), tasks=self.get_tasks_by_board(board_id))

    def get_all_tasks(self) -> List[TaskWithAssignee]:
        # Ein Lesezugriff pro Board, der erste Fehler bricht alles ab
        tasks: List[TaskWithAssignee] = []
        for board in self.get_all_boards():
            tasks.extend(self.get_tasks_by_board(board.id))
        return tasks

    def get_tasks_by_assignee(self, user_id: int) -> List[TaskWithAssignee]:
        return [task for task in self.get_all_tasks() if task.assignee_id == user_id]

    def seed_fixtures(self) -> None:
        """Insert the sample users, boards and tasks."""
        for user in SAMPLE_USERS:
            self.create_user(UserCreate(**user))
        for board in SAMPLE_BOARDS:
            self.create_board(BoardCreate(**board))
        for task in SAMPLE_TASKS:
            self.create_task(TaskCreate(**task))
        logger.info(
            "Seeded %d users, %d boards, %d tasks",
            len(SAMPLE_USERS), len(SAMPLE_BOARDS), len(SAMPLE_TASKS),
        )


class MemStorage(Storage):
    """
    Process-local storage for development and tests.

    State lives on the instance (dicts plus auto-increment counters), so two
    instances never share data. Reads and writes both hold `_lock`, since sync
    handlers run in a thread pool. Not usable across several worker processes.
    """

    def __init__(self, seed: bool = True):
        self._lock = threading.Lock()
        self._users: Dict[int, dict] = {}
        self._boards: Dict[int, dict] = {}
        self._tasks: Dict[int, dict] = {}
        self._time_entries: Dict[int, dict] = {}
        self._next_id = {"users": 1, "boards": 1, "tasks": 1, "time_entries": 1}
        if seed:
            self.seed_fixtures()

    def _allocate(self, table: str) -> int:
        new_id = self._next_id[table]
        self._next_id[table] += 1
        return new_id

    def _with_assignee(self, record: dict) -> TaskWithAssignee:
        assignee = self._users.get(record["assignee_id"]) if record["assignee_id"] else None
        return TaskWithAssignee(**record, assignee=User(**assignee) if assignee else None)

    # Users
    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            record = self._users.get(user_id)
            return User(**record) if record else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for record in self._users.values():
                if record["username"] == username:
                    return User(**record)
        return None

    def create_user(self, data: UserCreate) -> User:
        with self._lock:
            if any(u["username"] == data.username for u in self._users.values()):
                raise DuplicateUsernameError(data.username)
            record = data.model_dump()
            record["password"] = hash_password(data.password)
            record["id"] = self._allocate("users")
            self._users[record["id"]] = record
        return User(**record)

    def get_all_users(self) -> List[User]:
        with self._lock:
            return [User(**record) for record in self._users.values()]

    # Boards
    def get_board(self, board_id: int) -> Optional[Board]:
        with self._lock:
            record = self._boards.get(board_id)
            return Board(**record) if record else None

    def get_all_boards(self) -> List[Board]:
        with self._lock:
            return [Board(**record) for record in self._boards.values()]

    def create_board(self, data: BoardCreate) -> Board:
        with self._lock:
            record = data.model_dump()
            record["id"] = self._allocate("boards")
            self._boards[record["id"]] = record
        return Board(**record)

    def update_board(self, board_id: int, patch: BoardUpdate) -> Optional[Board]:
        with self._lock:
            record = self._boards.get(board_id)
            if record is None:
                return None
            record.update(patch.model_dump(exclude_unset=True))
            return Board(**record)

    def delete_board(self, board_id: int) -> bool:
        with self._lock:
            return self._boards.pop(board_id, None) is not None

    # Tasks
    def get_task(self, task_id: int) -> Optional[Task]:
        with self._lock:
            record = self._tasks.get(task_id)
            return Task(**record) if record else None

    def get_task_with_assignee(self, task_id: int) -> Optional[TaskWithAssignee]:
        with self._lock:
            record = self._tasks.get(task_id)
            return self._with_assignee(record) if record else None

    def get_tasks_by_board(self, board_id: int) -> List[TaskWithAssignee]:
        with self._lock:
            records = [r for r in self._tasks.values() if r["board_id"] == board_id]
            records.sort(key=lambda r: (r["position"], r["id"]))
            return [self._with_assignee(r) for r in records]

    def create_task(self, data: TaskCreate) -> Task:
        with self._lock:
            record = data.model_dump()
            record["id"] = self._allocate("tasks")
            self._tasks[record["id"]] = record
        return Task(**record)

    def update_task(self, task_id: int, patch: TaskUpdate) -> Optional[Task]:
        with self._lock:
            record = self._tasks.get(task_id)
            if record is None:
                return None
            record.update(patch.model_dump(exclude_unset=True))
            return Task(**record)

    def delete_task(self, task_id: int) -> bool:
        with self._lock:
            return self._tasks.pop(task_id, None) is not None

    def update_task_positions(self, task_ids: List[int]) -> None:
        with self._lock:
            for index, task_id in enumerate(task_ids):
                record = self._tasks.get(task_id)
                if record is not None:
                    record["position"] = index

    # Time entries
    def get_time_entry(self, entry_id: int) -> Optional[TimeEntry]:
        with self._lock:
            record = self._time_entries.get(entry_id)
            return TimeEntry(**record) if record else None

    def get_time_entries_by_task(self, task_id: int) -> List[TimeEntry]:
        with self._lock:
            records = [r for r in self._time_entries.values() if r["task_id"] == task_id]
            records.sort(key=lambda r: (r["date"], r["id"]))
            return [TimeEntry(**r) for r in records]

    def create_time_entry(self, data: TimeEntryCreate) -> TimeEntry:
        with self._lock:
            record = data.model_dump()
            record["id"] = self._allocate("time_entries")
            record["created_at"] = _utcnow()
            self._time_entries[record["id"]] = record
        return TimeEntry(**record)

    def delete_time_entry(self, entry_id: int) -> bool:
        with self._lock:
            return self._time_entries.pop(entry_id, None) is not None


class DatabaseStorage(Storage):
    """SQLAlchemy-backed storage; one session per operation."""

    def __init__(self, session_factory):
        self._sessions = session_factory

    def is_empty(self) -> bool:
        with self._sessions() as db:
            return db.query(UserDB).first() is None and db.query(BoardDB).first() is None

    # Users
    def get_user(self, user_id: int) -> Optional[User]:
        with self._sessions() as db:
            row = db.get(UserDB, user_id)
            return User.model_validate(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._sessions() as db:
            row = db.query(UserDB).filter(UserDB.username == username).first()
            return User.model_validate(row) if row else None

    def create_user(self, data: UserCreate) -> User:
        with self._sessions() as db:
            values = data.model_dump()
            values["password"] = hash_password(data.password)
            row = UserDB(**values)
            db.add(row)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise DuplicateUsernameError(data.username)
            db.refresh(row)
            return User.model_validate(row)

    def get_all_users(self) -> List[User]:
        with self._sessions() as db:
            return [User.model_validate(row) for row in db.query(UserDB).order_by(UserDB.id).all()]

    # Boards
    def get_board(self, board_id: int) -> Optional[Board]:
        with self._sessions() as db:
            row = db.get(BoardDB, board_id)
            return Board.model_validate(row) if row else None

    def get_all_boards(self) -> List[Board]:
        with self._sessions() as db:
            return [Board.model_validate(row) for row in db.query(BoardDB).order_by(BoardDB.id).all()]

    def create_board(self, data: BoardCreate) -> Board:
        with self._sessions() as db:
            row = BoardDB(**data.model_dump())
            db.add(row)
            db.commit()
            db.refresh(row)
            return Board.model_validate(row)

    def update_board(self, board_id: int, patch: BoardUpdate) -> Optional[Board]:
        with self._sessions() as db:
            row = db.get(BoardDB, board_id)
            if row is None:
                return None
            for key, value in patch.model_dump(exclude_unset=True).items():
                setattr(row, key, value)
            db.commit()
            return Board.model_validate(row)

    def delete_board(self, board_id: int) -> bool:
        with self._sessions() as db:
            row = db.get(BoardDB, board_id)
            if row is None:
                return False
            db.delete(row)
            db.commit()
            return True

    # Tasks
    def get_task(self, task_id: int) -> Optional[Task]:
        with self._sessions() as db:
            row = db.get(TaskDB, task_id)
            return Task.model_validate(row) if row else None

    def get_task_with_assignee(self, task_id: int) -> Optional[TaskWithAssignee]:
        with self._sessions() as db:
            row = db.get(TaskDB, task_id)
            return TaskWithAssignee.model_validate(row) if row else None

    def get_tasks_by_board(self, board_id: int) -> List[TaskWithAssignee]:
        with self._sessions() as db:
            rows = (
                db.query(TaskDB)
                .filter(TaskDB.board_id == board_id)
                .order_by(TaskDB.position, TaskDB.id)
                .all()
            )
            return [TaskWithAssignee.model_validate(row) for row in rows]

    def create_task(self, data: TaskCreate) -> Task:
        with self._sessions() as db:
            row = TaskDB(**data.model_dump())
            db.add(row)
            db.commit()
            db.refresh(row)
            return Task.model_validate(row)

    def update_task(self, task_id: int, patch: TaskUpdate) -> Optional[Task]:
        with self._sessions() as db:
            row = db.get(TaskDB, task_id)
            if row is None:
                return None
            for key, value in patch.model_dump(exclude_unset=True).items():
                setattr(row, key, value)
            db.commit()
            return Task.model_validate(row)

    def delete_task(self, task_id: int) -> bool:
        with self._sessions() as db:
            row = db.get(TaskDB, task_id)
            if row is None:
                return False
            db.delete(row)
            db.commit()
            return True

    def update_task_positions(self, task_ids: List[int]) -> None:
        if not task_ids:
            return
        # Bei doppelten IDs gewinnt der letzte Index, wie im Speicher-Backend
        positions = {task_id: index for index, task_id in enumerate(task_ids)}
        with self._sessions() as db:
            for row in db.query(TaskDB).filter(TaskDB.id.in_(list(positions))).all():
                row.position = positions[row.id]
            db.commit()

    # Time entries
    def get_time_entry(self, entry_id: int) -> Optional[TimeEntry]:
        with self._sessions() as db:
            row = db.get(TimeEntryDB, entry_id)
            return TimeEntry.model_validate(row) if row else None

    def get_time_entries_by_task(self, task_id: int) -> List[TimeEntry]:
        with self._sessions() as db:
            rows = (
                db.query(TimeEntryDB)
                .filter(TimeEntryDB.task_id == task_id)
                .order_by(TimeEntryDB.date, TimeEntryDB.id)
                .all()
            )
            return [TimeEntry.model_validate(row) for row in rows]

    def create_time_entry(self, data: TimeEntryCreate) -> TimeEntry:
        with self._sessions() as db:
            row = TimeEntryDB(**data.model_dump(), created_at=_utcnow())
            db.add(row)
            db.commit()
            db.refresh(row)
            return TimeEntry.model_validate(row)

    def delete_time_entry(self, entry_id: int) -> bool:
        with self._sessions() as db:
            row = db.get(TimeEntryDB, entry_id)
            if row is None:
                return False
            db.delete(row)
            db.commit()
            return True
