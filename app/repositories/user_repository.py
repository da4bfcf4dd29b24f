"""
User repository: the only place that talks SQL to the `users` table.

Every method runs exactly one statement on a connection borrowed from the
injected engine's pool and returns it on exit, whether the statement
succeeded or raised. Store errors are not caught or translated here.

Public API
----------
list()                  -> list[UserOut]
get_by_id(id)           -> UserOut | None
create(data)            -> UserOut
update(id, data)        -> UserOut | None
remove(id)              -> UserOut | None

`None` means no row matched; it is never used to signal an error.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine, RowMapping

from app.models.user import User
from app.schemas.user import UserCreate, UserOut, UserUpdate

logger = logging.getLogger(__name__)

users = User.__table__


def _to_user(row: Optional[RowMapping]) -> Optional[UserOut]:
    return UserOut.model_validate(dict(row)) if row is not None else None


class UserRepository:
    """CRUD over `users`, bound to a connection pool passed in by the caller."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def list(self) -> list[UserOut]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(users)).mappings().all()
        logger.debug("repo.users.list", extra={"count": len(rows)})
        return [UserOut.model_validate(dict(row)) for row in rows]

    def get_by_id(self, user_id: int) -> Optional[UserOut]:
        with self.engine.connect() as conn:
            row = conn.execute(select(users).where(users.c.id == user_id)).mappings().first()
        logger.debug("repo.users.get", extra={"user_id": user_id, "found": row is not None})
        return _to_user(row)

    def create(self, data: UserCreate) -> UserOut:
        stmt = insert(users).values(**data.model_dump()).returning(*users.c)
        with self.engine.begin() as conn:
            row = conn.execute(stmt).mappings().one()
        logger.debug("repo.users.create", extra={"user_id": row["id"]})
        return UserOut.model_validate(dict(row))

    def update(self, user_id: int, data: UserUpdate) -> Optional[UserOut]:
        """
        Write only the fields set on `data`; omitted columns keep their stored
        value because they never appear in the SET clause.
        """
        changes = data.changes()
        if not changes:
            raise ValueError("update requires at least one field")
        stmt = (
            update(users)
            .where(users.c.id == user_id)
            .values(**changes)
            .returning(*users.c)
        )
        with self.engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
        logger.debug(
            "repo.users.update",
            extra={"user_id": user_id, "fields": sorted(changes), "found": row is not None},
        )
        return _to_user(row)

    def remove(self, user_id: int) -> Optional[UserOut]:
        stmt = delete(users).where(users.c.id == user_id).returning(*users.c)
        with self.engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
        logger.debug("repo.users.remove", extra={"user_id": user_id, "found": row is not None})
        return _to_user(row)
