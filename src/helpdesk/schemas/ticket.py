"""Ticket-related Pydantic schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import ConfigDict, EmailStr, Field, model_validator

from .common import ApiModel, Pagination

TRACKING_ID_PATTERN = r"^\d{8}-\d+$"

Priority = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]
Status = Literal["PENDING", "IN_PROGRESS", "RESOLVED", "CLOSED"]
Category = Literal["TROUBLESHOOTING", "ACCOUNT_MANAGEMENT", "DOCUMENT_UPLOAD"]


class _TicketCreateBase(ApiModel):
    """Contact fields shared by every ticket form."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    department: str = Field(..., min_length=1, max_length=300)
    priority: Priority = "MEDIUM"


class TroubleshootingTicketCreate(_TicketCreateBase):
    """Equipment problem report."""

    category: Literal["TROUBLESHOOTING"] = "TROUBLESHOOTING"
    location_type: Literal["SCHOOL", "OFFICE"] | None = None
    school: str | None = Field(None, max_length=300)
    location: str | None = Field(None, max_length=300)
    date_of_request: date | None = None
    type_of_equipment: str = Field(..., min_length=1, max_length=200)
    model_of_equipment: str = Field(..., min_length=1, max_length=200)
    serial_no: str = Field(..., min_length=1, max_length=200)
    specific_problem: str = Field(..., min_length=1, max_length=5000)

    @model_validator(mode="after")
    def _require_school_for_school_location(self) -> TroubleshootingTicketCreate:
        if self.location_type == "SCHOOL" and not self.school:
            raise ValueError("School is required when the location type is SCHOOL")
        return self


class AccountManagementTicketCreate(_TicketCreateBase):
    """Account request or password reset."""

    category: Literal["ACCOUNT_MANAGEMENT"] = "ACCOUNT_MANAGEMENT"
    type: Literal["Account Request", "Password Reset"]
    reason: str = Field(..., min_length=1, max_length=5000)
    position: str | None = Field(None, max_length=200)
    employee_id: str | None = Field(None, max_length=100)
    account_type: Literal["email", "system", "both"] | None = None


class DocumentUploadTicketCreate(_TicketCreateBase):
    """Request to process an official document."""

    category: Literal["DOCUMENT_UPLOAD"] = "DOCUMENT_UPLOAD"
    document_title: str = Field(..., min_length=1, max_length=300)
    document_type: Literal["official", "report", "form", "other"]
    document_description: str = Field(..., min_length=1, max_length=5000)
    files: list[str] = Field(default_factory=list, description="References to uploaded files")


TicketCreate = (
    TroubleshootingTicketCreate | AccountManagementTicketCreate | DocumentUploadTicketCreate
)


class TicketCreatedResponse(ApiModel):
    """Identifiers handed back after a ticket is stored."""

    message: str
    ticket_id: int
    tracking_id: str


class CategoryDetails(ApiModel):
    """Human-oriented summary of the category payload."""

    type: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class TicketUpdateEntry(ApiModel):
    """One row of a ticket's status history."""

    id: int
    previous_status: str
    new_status: str
    comment: str | None
    updated_by_id: int | None
    created_at: datetime


class TicketResponse(ApiModel):
    """Full ticket representation returned to staff and submitters."""

    id: int
    tracking_id: str | None
    category: str
    status: str
    priority: str
    name: str
    email: str
    department: str | None
    location: str | None
    details: dict[str, Any]
    completed_by: str | None = None
    diagnosis: str | None = None
    action_taken: str | None = None
    recommendations: str | None = None
    response: str | None = None
    created_at: datetime
    updated_at: datetime
    category_specific_details: CategoryDetails | None = None
    updates: list[TicketUpdateEntry] = Field(default_factory=list)


class TicketListResponse(ApiModel):
    """Paginated ticket listing."""

    items: list[TicketResponse]
    pagination: Pagination


class TrackTicketRequest(ApiModel):
    """Public lookup of a ticket by tracking id and submitter email."""

    tracking_id: str = Field(..., pattern=TRACKING_ID_PATTERN)
    email: EmailStr


class TicketAdminUpdate(ApiModel):
    """Fields an administrator may change; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    status: Status | None = None
    priority: Priority | None = None
    completed_by: str | None = None
    diagnosis: str | None = None
    action_taken: str | None = None
    recommendations: str | None = None
    response: str | None = None

    # Category-specific keys stored inside ``details``
    specific_problem: str | None = None
    type_of_equipment: str | None = None
    model_of_equipment: str | None = None
    serial_no: str | None = None
    account_type: Literal["email", "system", "both"] | None = None
    reason: str | None = None
    document_title: str | None = None
    document_type: Literal["official", "report", "form", "other"] | None = None
    document_description: str | None = None
    files: list[str] | None = None


class StatusUpdateRequest(ApiModel):
    """Administrator status change with an optional note for the submitter."""

    status: Status
    comment: str | None = Field(None, max_length=5000)


class CategorySetting(ApiModel):
    """Ticket category as exposed to the public forms."""

    id: int
    name: Category
    active: bool = True


class CategoryListResponse(ApiModel):
    categories: list[CategorySetting]
