import logging
from typing import List

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import ValidationError

from dependencies import backend_call, get_storage, limiter, write_rate_limit
from schemas import Task, TaskCreate, TaskPositions, TaskUpdate, TaskWithAssignee
from storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"]
)


@router.get("", response_model=List[TaskWithAssignee])
def read_all_tasks(storage: Storage = Depends(get_storage)):
    """Alle Aufgaben aus allen Boards, Board für Board aneinandergehängt."""
    with backend_call("Failed to fetch all tasks"):
        return storage.get_all_tasks()


@router.post("", response_model=Task, status_code=201)
@limiter.limit(write_rate_limit)
def create_task(request: Request, task: TaskCreate, storage: Storage = Depends(get_storage)):
    with backend_call("Failed to create task"):
        created = storage.create_task(task)
    logger.info("Created task %s on board %s", created.id, created.board_id)
    return created


# Muss vor "/{task_id}" registriert sein, sonst greift die ID-Route
@router.patch("/positions")
def update_task_positions(payload: dict = Body(...), storage: Storage = Depends(get_storage)):
    """
    Reorder tasks: each id in ``taskIds`` gets its index as new position.

    Unknown ids are skipped. Used by drag and drop in the list view.
    """
    # 400 mit eigener Meldung, nicht über den Validierungs-Handler
    try:
        positions = TaskPositions.model_validate(payload)
    except ValidationError:
        raise HTTPException(status_code=400, detail="taskIds must be an array")
    with backend_call("Failed to update task positions"):
        storage.update_task_positions(positions.task_ids)
    return {"message": "Task positions updated"}


@router.get("/{task_id}", response_model=TaskWithAssignee)
def read_task(task_id: int, storage: Storage = Depends(get_storage)):
    with backend_call("Failed to fetch task"):
        task = storage.get_task_with_assignee(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.patch("/{task_id}", response_model=Task)
def update_task(task_id: int, patch: TaskUpdate, storage: Storage = Depends(get_storage)):
    # Nur die mitgeschickten Felder werden überschrieben (last write wins)
    with backend_call("Failed to update task"):
        task = storage.update_task(task_id, patch)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.delete("/{task_id}")
def delete_task(task_id: int, storage: Storage = Depends(get_storage)):
    with backend_call("Failed to delete task"):
        deleted = storage.delete_task(task_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"message": "Task deleted successfully"}
