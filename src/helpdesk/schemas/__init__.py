# src/helpdesk/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .captcha import CaptchaResponse, RateLimitStatusResponse
from .common import ApiModel, FieldError, MessageResponse, Pagination
from .stats import DashboardStats
from .ticket import (
    AccountManagementTicketCreate,
    DocumentUploadTicketCreate,
    StatusUpdateRequest,
    TicketAdminUpdate,
    TicketCreatedResponse,
    TicketListResponse,
    TicketResponse,
    TrackTicketRequest,
    TroubleshootingTicketCreate,
)
from .user import LoginRequest, LoginResponse, RegisterRequest, UserResponse, UserUpdateRequest

__all__ = [
    "ApiModel", "FieldError", "MessageResponse", "Pagination",
    "CaptchaResponse", "RateLimitStatusResponse",
    "DashboardStats",
    "AccountManagementTicketCreate", "DocumentUploadTicketCreate", "TroubleshootingTicketCreate",
    "StatusUpdateRequest", "TicketAdminUpdate",
    "TicketCreatedResponse", "TicketListResponse", "TicketResponse", "TrackTicketRequest",
    "LoginRequest", "LoginResponse", "RegisterRequest", "UserResponse", "UserUpdateRequest",
]
