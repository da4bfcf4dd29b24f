"""
Users router (mounted under /api).

GET    /users            : list every user
GET    /users/{user_id}  : single user
POST   /users            : create
PUT    /users/{user_id}  : partial update (at least one field)
DELETE /users/{user_id}  : delete, returns the removed row
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.core.dependencies import (
    get_user_repository,
    valid_create_payload,
    valid_update_payload,
    valid_user_id,
)
from app.core.errors import UserNotFoundError
from app.repositories.user_repository import UserRepository
from app.schemas.common import ErrorResponse, FaultResponse
from app.schemas.user import UserCreate, UserEnvelope, UserListEnvelope, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid user ID or request body."},
    404: {"model": ErrorResponse, "description": "No user with this ID."},
    500: {"model": FaultResponse, "description": "Unexpected server-side failure."},
}


@router.get(
    "",
    response_model=UserListEnvelope,
    summary="List users",
    responses={500: _ERROR_RESPONSES[500]},
)
def list_users(repo: UserRepository = Depends(get_user_repository)):
    """Return every user in the store's natural order."""
    return UserListEnvelope(status=status.HTTP_200_OK, message="Users Retrieved", data=repo.list())


@router.get(
    "/{user_id}",
    response_model=UserEnvelope,
    summary="Get a user by ID",
    responses=_ERROR_RESPONSES,
)
def get_user(
    user_id: int = Depends(valid_user_id),
    repo: UserRepository = Depends(get_user_repository),
):
    user = repo.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return UserEnvelope(status=status.HTTP_200_OK, message="User Retrieved", data=user)


@router.post(
    "",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    responses={400: _ERROR_RESPONSES[400], 500: _ERROR_RESPONSES[500]},
)
def create_user(
    payload: UserCreate = Depends(valid_create_payload),
    repo: UserRepository = Depends(get_user_repository),
):
    """
    Create a user from `name`, `email` and `age`.

    Every violated constraint is reported in one 400 response.
    """
    user = repo.create(payload)
    return UserEnvelope(status=status.HTTP_201_CREATED, message="User Created", data=user)


@router.put(
    "/{user_id}",
    response_model=UserEnvelope,
    summary="Update some fields of a user",
    responses=_ERROR_RESPONSES,
)
def update_user(
    update: tuple[int, UserUpdate] = Depends(valid_update_payload),
    repo: UserRepository = Depends(get_user_repository),
):
    """
    Apply a partial update. Fields left out of the body keep their stored value.
    """
    user_id, changes = update
    user = repo.update(user_id, changes)
    if user is None:
        raise UserNotFoundError(user_id)
    return UserEnvelope(status=status.HTTP_200_OK, message="User Updated", data=user)


@router.delete(
    "/{user_id}",
    response_model=UserEnvelope,
    summary="Delete a user",
    responses=_ERROR_RESPONSES,
)
def delete_user(
    user_id: int = Depends(valid_user_id),
    repo: UserRepository = Depends(get_user_repository),
):
    """Delete a user and return the row as it was before removal."""
    user = repo.remove(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return UserEnvelope(status=status.HTTP_200_OK, message="User Deleted", data=user)
