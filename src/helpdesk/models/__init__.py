# src/helpdesk/models/__init__.py
"""SQLAlchemy models for the help-desk application."""

from .ticket import Ticket, TicketUpdate
from .user import User

__all__ = [
    "Ticket", "TicketUpdate",
    "User",
]
