"""Authentication endpoints for the help-desk API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from helpdesk.api.v1.dependencies import SessionDep
from helpdesk.core.security import create_access_token
from helpdesk.schemas.user import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from helpdesk.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: SessionDep) -> UserResponse:
    """Create a USER account; administrators are provisioned separately."""
    try:
        user = user_service.create_user(db, data)
    except user_service.DuplicateEmailError as err:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(err)) from err

    logger.info("user_registered", extra={"user_id": user.id})
    return UserResponse.model_validate(user)


@router.post("/login", response_model=LoginResponse)
def login(data: LoginRequest, db: SessionDep) -> LoginResponse:
    """Exchange email and password for a bearer token."""
    user = user_service.authenticate(db, str(data.email), data.password)
    if user is None:
        logger.info("login_failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token(user.id, {"role": user.role})
    return LoginResponse(
        access_token=token,
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )
