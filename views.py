"""
Derived views over task lists as returned by the API (camelCase dicts).

Everything here is a pure function: filtering, sorting and date bucketing
happen on the client side, the server has no filter endpoints.
"""
import calendar
import math
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from schemas import PRIORITY_RANK, TASK_STATUSES

SORT_KEYS = ("name", "priority", "dueDate", "status")


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def _percent(part: int, total: int) -> int:
    # Halbe Prozente werden aufgerundet (wie Math.round)
    if total <= 0:
        return 0
    return int(math.floor(part * 100 / total + 0.5))


def is_overdue(task: dict, today: date, by_flag: bool = False) -> bool:
    """Due before ``today`` and not done; ``by_flag`` checks ``completed`` instead of status."""
    due = _parse_date(task.get("dueDate"))
    if due is None or due >= today:
        return False
    done = task.get("completed") if by_flag else task.get("status") == "completed"
    return not done


# --- Dashboard list ---

def filter_tasks(tasks: Iterable[dict], status: str = "all") -> List[dict]:
    if status == "all":
        return list(tasks)
    return [task for task in tasks if task.get("status") == status]


def sort_tasks(tasks: Iterable[dict], sort_by: str = "name") -> List[dict]:
    """
    Sort for the dashboard list.

    ``name`` and ``status`` sort alphabetically, ``priority`` puts high first,
    ``dueDate`` puts the earliest first and tasks without a date last. Unknown
    keys keep the incoming order. The sort is stable.
    """
    tasks = list(tasks)
    if sort_by not in SORT_KEYS:
        return tasks
    if sort_by == "name":
        return sorted(tasks, key=lambda t: (t.get("name") or "").casefold())
    if sort_by == "priority":
        return sorted(tasks, key=lambda t: -PRIORITY_RANK.get(t.get("priority"), 0))
    if sort_by == "dueDate":
        return sorted(tasks, key=lambda t: (not t.get("dueDate"), t.get("dueDate") or ""))
    return sorted(tasks, key=lambda t: t.get("status") or "")


def filter_and_sort_tasks(tasks: Iterable[dict], status: str = "all", sort_by: str = "name") -> List[dict]:
    return sort_tasks(filter_tasks(tasks, status), sort_by)


# --- Table view ---

def toggle_sort(current_field: Optional[str], current_direction: str, field: str):
    """Clicking the active column flips the direction, another column starts ascending."""
    if current_field == field:
        return field, "desc" if current_direction == "asc" else "asc"
    return field, "asc"


def _table_value(task: dict, field: str):
    if field == "assignee":
        return ((task.get("assignee") or {}).get("name") or "").casefold()
    if field == "priority":
        return PRIORITY_RANK.get(task.get("priority"), 0)
    if field == "dueDate":
        # fehlendes Datum zählt als frühestes
        return task.get("dueDate") or ""
    value = task.get(field)
    return "" if value is None else value


def sort_table(tasks: Iterable[dict], field: Optional[str] = None, direction: str = "asc") -> List[dict]:
    tasks = list(tasks)
    if not field:
        return tasks
    return sorted(tasks, key=lambda t: _table_value(t, field), reverse=direction == "desc")


# --- Kanban ---

def kanban_columns(tasks: Iterable[dict]) -> Dict[str, List[dict]]:
    columns: Dict[str, List[dict]] = {status: [] for status in TASK_STATUSES}
    for task in tasks:
        if task.get("status") in columns:
            columns[task["status"]].append(task)
    return columns


def board_stats(tasks: Optional[Iterable[dict]], today: Optional[date] = None) -> dict:
    tasks = list(tasks or [])
    today = today or date.today()
    return {
        "total": len(tasks),
        "completed": sum(1 for t in tasks if t.get("status") == "completed"),
        "inProgress": sum(1 for t in tasks if t.get("status") == "in-progress"),
        "overdue": sum(1 for t in tasks if is_overdue(t, today)),
    }


# --- Calendar & Timeline ---

def tasks_due_on(tasks: Iterable[dict], day: date) -> List[dict]:
    return [task for task in tasks if _parse_date(task.get("dueDate")) == day]


def tasks_due_between(tasks: Iterable[dict], start: date, end: date) -> List[dict]:
    result = []
    for task in tasks:
        due = _parse_date(task.get("dueDate"))
        if due is not None and start <= due <= end:
            result.append(task)
    return result


def calendar_month(tasks: Iterable[dict], year: int, month: int, today: Optional[date] = None) -> dict:
    """
    Month grid for the calendar page.

    Weeks start on Sunday and cover the whole month, so the first and last
    week may contain days of the neighbouring months (``inMonth`` false).
    """
    tasks = list(tasks)
    today = today or date.today()
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    start = first - timedelta(days=(first.weekday() + 1) % 7)
    end = last + timedelta(days=(5 - last.weekday()) % 7)

    weeks, week = [], []
    day = start
    while day <= end:
        week.append({
            "date": day.isoformat(),
            "inMonth": day.month == month,
            "isToday": day == today,
            "tasks": tasks_due_on(tasks, day),
        })
        if len(week) == 7:
            weeks.append(week)
            week = []
        day += timedelta(days=1)

    return {
        "year": year,
        "month": month,
        "weeks": weeks,
        "tasksThisMonth": len(tasks_due_between(tasks, first, last)),
        "dueToday": len(tasks_due_on(tasks, today)),
        "overdue": sum(1 for t in tasks if is_overdue(t, today)),
    }


def week_bounds(reference: date):
    """Monday..Sunday of the week containing ``reference``."""
    start = reference - timedelta(days=reference.weekday())
    return start, start + timedelta(days=6)


def timeline_week(tasks: Iterable[dict], reference: Optional[date] = None, today: Optional[date] = None) -> dict:
    tasks = list(tasks)
    today = today or date.today()
    start, end = week_bounds(reference or today)
    week_tasks = tasks_due_between(tasks, start, end)
    completed = [t for t in week_tasks if t.get("status") == "completed"]
    days = []
    for offset in range(7):
        day = start + timedelta(days=offset)
        days.append({"date": day.isoformat(), "isToday": day == today, "tasks": tasks_due_on(tasks, day)})
    return {
        "weekStart": start.isoformat(),
        "weekEnd": end.isoformat(),
        "days": days,
        "totalTasks": len(week_tasks),
        "completedTasks": len(completed),
        "completionRate": _percent(len(completed), len(week_tasks)),
        "estimatedHours": sum(t.get("estimatedHours") or 0 for t in week_tasks),
        "actualHours": sum(t.get("actualHours") or 0 for t in week_tasks),
    }


# --- Reports ---

def build_report(tasks: Iterable[dict], users: Iterable[dict], board_id: Optional[int] = None,
                 today: Optional[date] = None) -> dict:
    """Report page figures; completion here follows the ``completed`` flag, not the status."""
    today = today or date.today()
    tasks = list(tasks)
    if board_id is not None:
        tasks = [t for t in tasks if t.get("boardId") == board_id]

    total = len(tasks)
    completed = sum(1 for t in tasks if t.get("completed"))
    status_counts: Dict[str, int] = {}
    priority_counts: Dict[str, int] = {}
    for task in tasks:
        status_counts[task.get("status")] = status_counts.get(task.get("status"), 0) + 1
        priority_counts[task.get("priority")] = priority_counts.get(task.get("priority"), 0) + 1

    team = []
    for user in users:
        assigned = [t for t in tasks if t.get("assigneeId") == user.get("id")]
        if not assigned:
            continue
        done = sum(1 for t in assigned if t.get("completed"))
        team.append({
            **user,
            "totalTasks": len(assigned),
            "completedTasks": done,
            "completionRate": _percent(done, len(assigned)),
            "totalHours": sum(t.get("actualHours") or 0 for t in assigned),
        })

    return {
        "totalTasks": total,
        "completedTasks": completed,
        "overdueTasks": sum(1 for t in tasks if is_overdue(t, today, by_flag=True)),
        "completionRate": _percent(completed, total),
        "totalEstimatedHours": sum(t.get("estimatedHours") or 0 for t in tasks),
        "totalActualHours": sum(t.get("actualHours") or 0 for t in tasks),
        "statusCounts": status_counts,
        "priorityCounts": priority_counts,
        "statusPercentages": {k: _percent(v, total) for k, v in status_counts.items()},
        "priorityPercentages": {k: _percent(v, total) for k, v in priority_counts.items()},
        "team": team,
    }


# --- Task editor & time tracking ---

def task_form_payload(form: dict, board_id: int, task: Optional[dict] = None) -> dict:
    """
    Turn task editor input into the request body for create/update.

    Empty strings become null, ``"unassigned"`` clears the assignee and
    numbers typed as text are parsed.
    """
    name = (form.get("name") or "").strip()
    if not name:
        raise ValueError("Task name is required")
    assignee = form.get("assigneeId")
    estimated = form.get("estimatedHours")
    return {
        "name": name,
        "description": form.get("description") or None,
        "status": form.get("status") or "not-started",
        "priority": form.get("priority") or "medium",
        "boardId": board_id,
        "assigneeId": int(assignee) if assignee not in (None, "", "unassigned") else None,
        "dueDate": form.get("dueDate") or None,
        "startDate": form.get("startDate") or None,
        "estimatedHours": int(estimated) if estimated not in (None, "") else None,
        "actualHours": (task or {}).get("actualHours") or 0,
        "position": (task or {}).get("position") or 0,
        "completed": False,
    }


def tracked_hours(started_at: datetime, stopped_at: datetime) -> float:
    """Timer duration in hours, truncated to hundredths."""
    seconds = max((stopped_at - started_at).total_seconds(), 0)
    return math.floor(seconds / 3600 * 100) / 100


def format_timer(seconds: int) -> str:
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
