from datetime import date, datetime

import pytest

from views import (
    board_stats, build_report, calendar_month, filter_and_sort_tasks, filter_tasks,
    format_timer, kanban_columns, sort_table, sort_tasks, task_form_payload,
    timeline_week, toggle_sort, tracked_hours,
)

TODAY = date(2024, 12, 12)  # Donnerstag


def make_task(task_id, name, status="not-started", priority="medium", due=None, **extra):
    task = {
        "id": task_id, "boardId": 1, "name": name, "status": status, "priority": priority,
        "dueDate": due, "assigneeId": None, "estimatedHours": 0, "actualHours": 0,
        "completed": status == "completed",
    }
    task.update(extra)
    return task


@pytest.fixture
def tasks():
    return [
        make_task(1, "Launch campaign", "not-started", "high", "2024-12-15", assigneeId=1, estimatedHours=5),
        make_task(2, "banner assets", "completed", "medium", "2024-12-10", assigneeId=2, actualHours=4),
        make_task(3, "Write copy", "in-progress", "low", "2024-12-20", assigneeId=1, estimatedHours=3, actualHours=2),
        make_task(4, "Email automation", "not-started", "high", "2024-12-08", assigneeId=4),
        make_task(5, "Research", "completed", "medium", None, assigneeId=5),
    ]


# --- Filter & Sort ---

def test_filter_by_status(tasks):
    assert [t["id"] for t in filter_tasks(tasks, "completed")] == [2, 5]
    assert filter_tasks(tasks, "all") == tasks
    assert filter_tasks(tasks, "all") is not tasks


def test_sort_by_name_ignores_case(tasks):
    assert [t["name"] for t in sort_tasks(tasks, "name")] == [
        "banner assets", "Email automation", "Launch campaign", "Research", "Write copy",
    ]


def test_sort_by_priority_high_first_and_stable(tasks):
    assert [t["id"] for t in sort_tasks(tasks, "priority")] == [1, 4, 2, 5, 3]


def test_sort_by_due_date_missing_last(tasks):
    assert [t["id"] for t in sort_tasks(tasks, "dueDate")] == [4, 2, 1, 3, 5]


def test_unknown_sort_key_keeps_order(tasks):
    assert sort_tasks(tasks, "color") == tasks


def test_sort_by_status(tasks):
    assert [t["id"] for t in sort_tasks(tasks, "status")] == [2, 5, 3, 1, 4]


def test_filter_then_all_is_superset_in_sort_order(tasks):
    completed = filter_and_sort_tasks(tasks, "completed", "priority")
    everything = filter_and_sort_tasks(tasks, "all", "priority")
    assert {t["id"] for t in completed} <= {t["id"] for t in everything}
    assert len(everything) == len(tasks)
    # Reihenfolge der Teilmenge bleibt im Gesamtergebnis erhalten
    positions = [everything.index(t) for t in completed]
    assert positions == sorted(positions)


# --- Table ---

def test_toggle_sort():
    assert toggle_sort(None, "asc", "name") == ("name", "asc")
    assert toggle_sort("name", "asc", "name") == ("name", "desc")
    assert toggle_sort("name", "desc", "name") == ("name", "asc")
    assert toggle_sort("name", "desc", "priority") == ("priority", "asc")


def test_sort_table(tasks):
    tasks[0]["assignee"] = {"name": "Sarah Wilson"}
    tasks[1]["assignee"] = {"name": "Mike Chen"}
    assert sort_table(tasks) == tasks
    assert [t["id"] for t in sort_table(tasks, "assignee")][:3] == [3, 4, 5]
    assert [t["id"] for t in sort_table(tasks, "assignee", "desc")][:2] == [1, 2]
    assert [t["id"] for t in sort_table(tasks, "priority", "desc")] == [1, 4, 2, 5, 3]
    # ohne Datum ganz vorne
    assert [t["id"] for t in sort_table(tasks, "dueDate")] == [5, 4, 2, 1, 3]


# --- Kanban & Stats ---

def test_kanban_columns(tasks):
    columns = kanban_columns(tasks)
    assert list(columns) == ["not-started", "in-progress", "completed"]
    assert [t["id"] for t in columns["not-started"]] == [1, 4]
    assert [t["id"] for t in columns["in-progress"]] == [3]
    assert [t["id"] for t in columns["completed"]] == [2, 5]


def test_board_stats(tasks):
    assert board_stats(tasks, TODAY) == {"total": 5, "completed": 2, "inProgress": 1, "overdue": 1}
    assert board_stats(None, TODAY) == {"total": 0, "completed": 0, "inProgress": 0, "overdue": 0}


# --- Calendar & Timeline ---

def test_calendar_month_grid(tasks):
    month = calendar_month(tasks, 2024, 12, today=TODAY)
    days = [day for week in month["weeks"] for day in week]

    assert len(month["weeks"]) == 5
    assert all(len(week) == 7 for week in month["weeks"])
    # 1.12.2024 ist ein Sonntag, der Monat endet in der Woche bis Samstag 4.1.
    assert days[0]["date"] == "2024-12-01"
    assert days[-1]["date"] == "2025-01-04"
    assert days[-1]["inMonth"] is False

    by_date = {day["date"]: day for day in days}
    assert [t["id"] for t in by_date["2024-12-15"]["tasks"]] == [1]
    assert by_date["2024-12-12"]["isToday"] is True
    assert month["tasksThisMonth"] == 4
    assert month["dueToday"] == 0
    assert month["overdue"] == 1


def test_calendar_month_starting_midweek():
    month = calendar_month([], 2025, 1, today=TODAY)
    assert month["weeks"][0][0]["date"] == "2024-12-29"
    assert month["weeks"][-1][-1]["date"] == "2025-02-01"


def test_timeline_week(tasks):
    week = timeline_week(tasks, reference=TODAY, today=TODAY)
    assert week["weekStart"] == "2024-12-09"
    assert week["weekEnd"] == "2024-12-15"
    assert [len(day["tasks"]) for day in week["days"]] == [0, 1, 0, 0, 0, 0, 1]
    assert week["totalTasks"] == 2
    assert week["completedTasks"] == 1
    assert week["completionRate"] == 50
    assert week["estimatedHours"] == 5
    assert week["actualHours"] == 4


# --- Reports ---

def test_build_report(tasks):
    users = [{"id": 1, "name": "Sarah"}, {"id": 2, "name": "Mike"}, {"id": 3, "name": "Emma"}]
    report = build_report(tasks, users, today=TODAY)

    assert report["totalTasks"] == 5
    assert report["completedTasks"] == 2
    assert report["completionRate"] == 40
    assert report["overdueTasks"] == 1
    assert report["totalEstimatedHours"] == 8
    assert report["totalActualHours"] == 6
    assert report["statusCounts"] == {"not-started": 2, "completed": 2, "in-progress": 1}
    assert report["priorityCounts"] == {"high": 2, "medium": 2, "low": 1}
    assert report["statusPercentages"]["in-progress"] == 20

    team = {member["name"]: member for member in report["team"]}
    assert set(team) == {"Sarah", "Mike"}
    assert team["Sarah"]["totalTasks"] == 2
    assert team["Sarah"]["completionRate"] == 0
    assert team["Mike"]["completionRate"] == 100
    assert team["Mike"]["totalHours"] == 4


def test_report_uses_completed_flag_not_status(tasks):
    tasks[0]["status"] = "completed"  # completed-Flag bleibt False
    assert build_report(tasks, [], today=TODAY)["completedTasks"] == 2


def test_report_for_one_board(tasks):
    tasks[0]["boardId"] = 2
    report = build_report(tasks, [], board_id=2, today=TODAY)
    assert report["totalTasks"] == 1
    assert build_report([], [], today=TODAY)["completionRate"] == 0


def test_completion_rate_rounds_half_up():
    tasks = [make_task(i, str(i), "completed" if i == 0 else "not-started") for i in range(8)]
    # 1/8 = 12.5 %
    assert build_report(tasks, [], today=TODAY)["completionRate"] == 13


# --- Task Editor & Timer ---

def test_task_form_payload():
    payload = task_form_payload(
        {"name": "  New task ", "assigneeId": "3", "estimatedHours": "4", "dueDate": "", "description": ""},
        board_id=2,
    )
    assert payload["name"] == "New task"
    assert payload["assigneeId"] == 3
    assert payload["estimatedHours"] == 4
    assert payload["dueDate"] is None
    assert payload["description"] is None
    assert payload["boardId"] == 2
    assert payload["completed"] is False


def test_task_form_payload_keeps_existing_position():
    payload = task_form_payload({"name": "Edit", "assigneeId": "unassigned"}, 1, task={"position": 4, "actualHours": 2})
    assert payload["assigneeId"] is None
    assert payload["position"] == 4
    assert payload["actualHours"] == 2


def test_task_form_requires_name():
    with pytest.raises(ValueError, match="Task name is required"):
        task_form_payload({"name": "   "}, 1)


def test_tracked_hours_and_timer():
    start = datetime(2024, 12, 12, 9, 0, 0)
    assert tracked_hours(start, datetime(2024, 12, 12, 10, 30, 0)) == 1.5
    assert tracked_hours(start, datetime(2024, 12, 12, 9, 0, 59)) == 0.01
    assert tracked_hours(start, start) == 0
    assert format_timer(3725) == "01:02:05"
