from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from dependencies import backend_call, get_storage, limiter, write_rate_limit
from schemas import TimeEntry, TimeEntryCreate
from storage import Storage

router = APIRouter(
    prefix="/api",
    tags=["time-entries"]
)


@router.get("/tasks/{task_id}/time-entries", response_model=List[TimeEntry])
def read_time_entries(task_id: int, storage: Storage = Depends(get_storage)):
    with backend_call("Failed to fetch time entries"):
        return storage.get_time_entries_by_task(task_id)


@router.post("/time-entries", response_model=TimeEntry, status_code=201)
@limiter.limit(write_rate_limit)
def create_time_entry(request: Request, entry: TimeEntryCreate, storage: Storage = Depends(get_storage)):
    # hours sind immer Stunden (z.B. 1.5), keine Minuten
    with backend_call("Failed to log time entry"):
        task = storage.get_task(entry.task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    with backend_call("Failed to log time entry"):
        return storage.create_time_entry(entry)


@router.delete("/time-entries/{entry_id}")
def delete_time_entry(entry_id: int, storage: Storage = Depends(get_storage)):
    with backend_call("Failed to delete time entry"):
        deleted = storage.delete_time_entry(entry_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Time entry not found")
    return {"message": "Time entry deleted successfully"}
