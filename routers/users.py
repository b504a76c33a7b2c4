import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from dependencies import backend_call, get_storage, limiter, write_rate_limit
from schemas import TaskWithAssignee, User, UserCreate
from storage import DuplicateUsernameError, Storage

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/users",
    tags=["users"]
)


@router.get("", response_model=List[User])
def read_users(storage: Storage = Depends(get_storage)):
    with backend_call("Failed to fetch users"):
        return storage.get_all_users()


@router.post("", response_model=User, status_code=201)
@limiter.limit(write_rate_limit)
def create_user(request: Request, user: UserCreate, storage: Storage = Depends(get_storage)):
    """
    Legt einen neuen Benutzer an.

    Der Benutzername muss eindeutig sein, das Passwort wird gehasht gespeichert
    und nie zurückgegeben.

    Raises:
        HTTPException(400): Wenn der Benutzername bereits vergeben ist.
    """
    with backend_call("Failed to create user"):
        existing = storage.get_user_by_username(user.username)
    if existing is not None:
        raise HTTPException(status_code=400, detail="Username already exists")
    try:
        return storage.create_user(user)
    except DuplicateUsernameError:
        # Gleichzeitig angelegt, Unique-Constraint hat gegriffen
        raise HTTPException(status_code=400, detail="Username already exists")
    except Exception:
        logger.exception("Failed to create user")
        raise HTTPException(status_code=500, detail="Failed to create user")


@router.get("/{user_id}", response_model=User)
def read_user(user_id: int, storage: Storage = Depends(get_storage)):
    with backend_call("Failed to fetch user"):
        user = storage.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/{user_id}/tasks", response_model=List[TaskWithAssignee])
def read_user_tasks(user_id: int, storage: Storage = Depends(get_storage)):
    with backend_call("Failed to fetch user tasks"):
        return storage.get_tasks_by_assignee(user_id)
