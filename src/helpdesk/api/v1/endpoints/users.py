"""User account endpoints."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from helpdesk.api.v1.dependencies import AdminUserDep, CurrentUserDep, SessionDep
from helpdesk.schemas.common import MessageResponse
from helpdesk.schemas.user import UserListResponse, UserResponse, UserUpdateRequest
from helpdesk.services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
def read_current_user(current_user: CurrentUserDep) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.get("", response_model=UserListResponse)
def list_users(
    _admin: AdminUserDep,
    db: SessionDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> UserListResponse:
    return user_service.list_users(db, page=page, limit=limit)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, _admin: AdminUserDep, db: SessionDep) -> UserResponse:
    return UserResponse.model_validate(user_service.get_user(db, user_id))


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdateRequest,
    _admin: AdminUserDep,
    db: SessionDep,
) -> UserResponse:
    """Edit an account's profile and role."""
    user = user_service.get_user(db, user_id)
    try:
        user = user_service.update_user(db, user, data)
    except user_service.DuplicateEmailError as err:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(err)) from err
    except user_service.LastAdminError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, _admin: AdminUserDep, db: SessionDep) -> MessageResponse:
    user = user_service.get_user(db, user_id)
    try:
        user_service.delete_user(db, user)
    except user_service.LastAdminError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    return MessageResponse(message="User deleted successfully")
