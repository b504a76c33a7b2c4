"""
Typed access to the REST API with a small query cache.

Every read goes through ``QueryCache`` under a key derived from the resource
path, e.g. ``("/api/boards", 3, "tasks")``. Mutations never touch cached data
themselves: after a successful round trip they invalidate the keys they
affect, and the next read fetches fresh server state. Invalidation works on
key prefixes, so invalidating ``("/api/boards",)`` also drops every single
board and its task list.
"""
import logging
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

QueryKey = Tuple[Hashable, ...]

BOARDS = "/api/boards"
USERS = "/api/users"
TASKS = "/api/tasks"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload


def log_toast(title: str, description: str) -> None:
    logger.warning("%s: %s", title, description)


class QueryCache:
    def __init__(self):
        self._data: Dict[QueryKey, Any] = {}

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._data

    def get(self, key: QueryKey, fetch: Callable[[], Any]) -> Any:
        if key not in self._data:
            self._data[key] = fetch()
        return self._data[key]

    def invalidate(self, prefix: QueryKey) -> List[QueryKey]:
        """Drop every cached key starting with ``prefix``; return the dropped keys."""
        dropped = [key for key in self._data if key[:len(prefix)] == prefix]
        for key in dropped:
            del self._data[key]
        return dropped


class ApiClient:
    """
    Query and mutation wrappers around the HTTP API.

    ``session`` can be a ``requests.Session`` or anything with the same
    ``request(method, url, json=...)`` signature (FastAPI's ``TestClient``
    works). ``notify`` is called with a title and a generic description when
    a mutation fails.
    """

    def __init__(self, base_url: str = "http://localhost:8000", session=None,
                 notify: Callable[[str, str], None] = log_toast, timeout: float = 15):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.notify = notify
        self.timeout = timeout
        self.cache = QueryCache()

    def _request(self, method: str, path: str, body: Optional[dict] = None) -> Any:
        kwargs = {"json": body} if body is not None else {}
        if isinstance(self.session, requests.Session):
            kwargs["timeout"] = self.timeout
        response = self.session.request(method, self.base_url + path, **kwargs)
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.status_code >= 400:
            message = response.reason_phrase if hasattr(response, "reason_phrase") else response.reason
            if isinstance(payload, dict):
                message = payload.get("message") or payload.get("detail") or message
            raise ApiError(response.status_code, str(message), payload)
        return payload

    def _query(self, key: QueryKey, path: str) -> Any:
        return self.cache.get(key, lambda: self._request("GET", path))

    def _mutate(self, method: str, path: str, body: Optional[dict], invalidates: List[QueryKey],
                failure: str) -> Any:
        try:
            result = self._request(method, path, body)
        except (ApiError, requests.RequestException):
            self.notify("Error", failure)
            raise
        for key in invalidates:
            self.cache.invalidate(key)
        return result

    # --- Queries ---

    def boards(self) -> List[dict]:
        return self._query((BOARDS,), BOARDS)

    def board_with_tasks(self, board_id: int) -> dict:
        return self._query((BOARDS, board_id), f"{BOARDS}/{board_id}")

    def board_tasks(self, board_id: int) -> List[dict]:
        return self._query((BOARDS, board_id, "tasks"), f"{BOARDS}/{board_id}/tasks")

    def users(self) -> List[dict]:
        return self._query((USERS,), USERS)

    def user_tasks(self, user_id: int) -> List[dict]:
        return self._query((USERS, user_id, "tasks"), f"{USERS}/{user_id}/tasks")

    def all_tasks(self) -> List[dict]:
        return self._query((TASKS,), TASKS)

    def time_entries(self, task_id: int) -> List[dict]:
        return self._query((TASKS, task_id, "time-entries"), f"{TASKS}/{task_id}/time-entries")

    # --- Board Mutations ---

    def create_board(self, data: dict) -> dict:
        return self._mutate("POST", BOARDS, data, [(BOARDS,)], "Failed to create board")

    def update_board(self, board_id: int, data: dict) -> dict:
        return self._mutate("PATCH", f"{BOARDS}/{board_id}", data,
                            [(BOARDS,), (BOARDS, board_id)], "Failed to update board")

    def delete_board(self, board_id: int) -> dict:
        return self._mutate("DELETE", f"{BOARDS}/{board_id}", None, [(BOARDS,)], "Failed to delete board")

    # --- Task Mutations ---

    def create_task(self, data: dict) -> dict:
        board_id = data.get("boardId", 1)
        return self._mutate("POST", TASKS, data,
                            [(BOARDS, board_id), (BOARDS, board_id, "tasks"), (TASKS,)],
                            "Failed to create task")

    def update_task(self, task_id: int, data: dict, board_id: Optional[int] = None) -> dict:
        invalidates: List[QueryKey] = []
        board_id = board_id if board_id is not None else data.get("boardId")
        if board_id is not None:
            invalidates += [(BOARDS, board_id), (BOARDS, board_id, "tasks")]
        invalidates += [(BOARDS,), (TASKS,), (USERS,)]
        return self._mutate("PATCH", f"{TASKS}/{task_id}", data, invalidates, "Failed to update task")

    def delete_task(self, task_id: int, board_id: int) -> dict:
        return self._mutate("DELETE", f"{TASKS}/{task_id}", None,
                            [(BOARDS, board_id), (BOARDS, board_id, "tasks"), (TASKS,)],
                            "Failed to delete task")

    def update_task_positions(self, task_ids: List[int], board_id: int) -> dict:
        return self._mutate("PATCH", f"{TASKS}/positions", {"taskIds": list(task_ids)},
                            [(BOARDS, board_id), (BOARDS, board_id, "tasks")],
                            "Failed to update task positions")

    def move_task(self, task: dict, status: str) -> dict:
        """Kanban drop: change only the status of ``task``."""
        if task.get("status") == status:
            return task
        return self.update_task(task["id"], {"status": status}, board_id=task.get("boardId"))

    # --- Time Tracking ---

    def log_time(self, task_id: int, user_id: int, hours: float, description: Optional[str] = None,
                 date: Optional[str] = None) -> dict:
        body = {"taskId": task_id, "userId": user_id, "hours": hours, "description": description}
        if date is not None:
            body["date"] = date
        return self._mutate("POST", "/api/time-entries", body,
                            [(TASKS, task_id, "time-entries")], "Failed to log time entry")
