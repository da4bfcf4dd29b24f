"""
FastAPI dependencies: repository injection and the request validation boundary.

Validators raise before the route body runs, so a rejected request never
reaches the repository. `valid_update_payload` depends on `valid_user_id`,
which makes a bad identifier short-circuit body validation.
"""
from typing import Any

from fastapi import Body, Depends, Request
from sqlalchemy.engine import Engine

from app.core.errors import InvalidUserIdError, ValidationFailedError
from app.repositories.user_repository import UserRepository
from app.schemas.user import UserCreate, UserUpdate
from app.services.validation import validate_create, validate_identifier, validate_update


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def get_user_repository(engine: Engine = Depends(get_engine)) -> UserRepository:
    return UserRepository(engine)


def valid_user_id(user_id: str) -> int:
    result = validate_identifier(user_id)
    if not result.ok:
        raise InvalidUserIdError(result.errors)
    return result.value


def valid_create_payload(payload: Any = Body(default=None)) -> UserCreate:
    result = validate_create(payload)
    if not result.ok:
        raise ValidationFailedError(result.errors)
    return result.value


def valid_update_payload(
    user_id: int = Depends(valid_user_id),
    payload: Any = Body(default=None),
) -> tuple[int, UserUpdate]:
    result = validate_update(payload)
    if not result.ok:
        raise ValidationFailedError(result.errors)
    return user_id, result.value
