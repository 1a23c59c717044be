"""CRUD-style helpers for managing portal accounts."""
from __future__ import annotations

import math
from typing import Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from helpdesk.core import security
from helpdesk.core.exceptions import HelpdeskError, NotFoundError
from helpdesk.models.user import ROLE_ADMIN, ROLE_USER, User
from helpdesk.schemas.common import Pagination
from helpdesk.schemas.user import RegisterRequest, UserListResponse, UserResponse, UserUpdateRequest

__all__ = [
    "DuplicateEmailError",
    "LastAdminError",
    "authenticate",
    "create_user",
    "delete_user",
    "get_user",
    "get_user_by_email",
    "list_users",
    "update_user",
]


class DuplicateEmailError(HelpdeskError):
    """An account with this email already exists."""


class LastAdminError(HelpdeskError):
    """The operation would leave the portal without an administrator."""


def get_user(db: Session, user_id: int) -> User:
    """Return a single user by primary key or raise NotFoundError."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def list_users(db: Session, page: int = 1, limit: int = 10) -> UserListResponse:
    """Return users newest first with page-based pagination."""
    query = db.query(User)
    total = query.count()
    rows: Sequence[User] = (
        query.order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return UserListResponse(
        items=[UserResponse.model_validate(row) for row in rows],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


def create_user(db: Session, data: RegisterRequest, *, role: str = ROLE_USER) -> User:
    """Persist a new account with a bcrypt password hash."""
    email = str(data.email).lower()
    if get_user_by_email(db, email) is not None:
        raise DuplicateEmailError("User already exists")

    user = User(
        name=data.name,
        email=email,
        password_hash=security.hash_password(data.password),
        department=data.department,
        role=role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        raise DuplicateEmailError("User already exists") from err
    db.refresh(user)
    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    """Return the user whose credentials match, else None."""
    user = get_user_by_email(db, email)
    if user is None or not security.verify_password(password, user.password_hash):
        return None
    return user


def _admin_count(db: Session) -> int:
    return db.query(User).filter(User.role == ROLE_ADMIN).count()


def update_user(db: Session, user: User, data: UserUpdateRequest) -> User:
    """Apply an admin edit; demoting the only administrator is refused."""
    if user.is_admin and data.role != ROLE_ADMIN and _admin_count(db) <= 1:
        raise LastAdminError("Cannot remove the last administrator")

    email = str(data.email).lower()
    if email != user.email and get_user_by_email(db, email) is not None:
        raise DuplicateEmailError("Email is already in use")

    user.name = data.name
    user.email = email
    user.department = data.department
    user.role = data.role
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    """Remove an account; the last administrator cannot be deleted."""
    if user.is_admin and _admin_count(db) <= 1:
        raise LastAdminError("Cannot delete the last administrator")
    db.delete(user)
    db.commit()
