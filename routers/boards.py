from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from dependencies import backend_call, get_storage, limiter, write_rate_limit
from schemas import Board, BoardCreate, BoardUpdate, BoardWithTasks, TaskWithAssignee
from storage import Storage

router = APIRouter(
    prefix="/api/boards",
    tags=["boards"]
)


@router.get("", response_model=List[Board])
def read_boards(storage: Storage = Depends(get_storage)):
    with backend_call("Failed to fetch boards"):
        return storage.get_all_boards()


@router.get("/{board_id}", response_model=BoardWithTasks)
def read_board(board_id: int, storage: Storage = Depends(get_storage)):
    """Board mit allen Aufgaben (inkl. Assignee), sortiert nach Position."""
    with backend_call("Failed to fetch board"):
        board = storage.get_board_with_tasks(board_id)
    if board is None:
        raise HTTPException(status_code=404, detail="Board not found")
    return board


@router.post("", response_model=Board, status_code=201)
@limiter.limit(write_rate_limit)
def create_board(request: Request, board: BoardCreate, storage: Storage = Depends(get_storage)):
    with backend_call("Failed to create board"):
        return storage.create_board(board)


@router.patch("/{board_id}", response_model=Board)
def update_board(board_id: int, patch: BoardUpdate, storage: Storage = Depends(get_storage)):
    with backend_call("Failed to update board"):
        board = storage.update_board(board_id, patch)
    if board is None:
        raise HTTPException(status_code=404, detail="Board not found")
    return board


@router.delete("/{board_id}")
def delete_board(board_id: int, storage: Storage = Depends(get_storage)):
    # Aufgaben des Boards bleiben bestehen
    with backend_call("Failed to delete board"):
        deleted = storage.delete_board(board_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Board not found")
    return {"message": "Board deleted successfully"}


@router.get("/{board_id}/tasks", response_model=List[TaskWithAssignee])
def read_board_tasks(board_id: int, storage: Storage = Depends(get_storage)):
    with backend_call("Failed to fetch tasks"):
        return storage.get_tasks_by_board(board_id)
