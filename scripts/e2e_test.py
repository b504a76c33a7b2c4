#!/usr/bin/env python3
"""Smoke test against a running server: python scripts/e2e_test.py [base_url]"""
import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from client import ApiClient, ApiError  # noqa: E402

BASE = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"


def pretty(obj):
    print(json.dumps(obj, indent=2, ensure_ascii=False))


if __name__ == '__main__':
    api = ApiClient(BASE)

    print('== boards ==')
    pretty(api.boards())

    print('\n== create board ==')
    board = api.create_board({"name": "E2E Board", "color": "#112233", "status": "active", "createdBy": 1})
    pretty(board)

    print('\n== create tasks ==')
    first = api.create_task({"boardId": board["id"], "name": "First", "priority": "high", "position": 0})
    second = api.create_task({"boardId": board["id"], "name": "Second", "priority": "low", "position": 1})
    pretty([first, second])

    print('\n== reorder + move ==')
    api.update_task_positions([second["id"], first["id"]], board_id=board["id"])
    api.move_task(first, "in-progress")
    pretty(api.board_tasks(board["id"]))

    print('\n== log time ==')
    pretty(api.log_time(first["id"], user_id=1, hours=1.25, description="E2E"))

    print('\n== cleanup ==')
    api.delete_task(first["id"], board_id=board["id"])
    api.delete_task(second["id"], board_id=board["id"])
    pretty(api.delete_board(board["id"]))

    try:
        api.board_with_tasks(board["id"])
    except ApiError as e:
        print(f'Board gone as expected ({e.status_code})')
    else:
        print('Board still exists, aborting')
        sys.exit(1)
