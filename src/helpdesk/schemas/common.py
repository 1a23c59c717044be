"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model whose JSON field names are camelCase.

    Python code uses snake_case attributes; clients may send either form.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(ApiModel):
    """Pagination metadata returned alongside list results."""

    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)


class MessageResponse(ApiModel):
    """Plain acknowledgement payload."""

    message: str


class FieldError(ApiModel):
    """One offending field in a validation failure."""

    field: str
    message: str
