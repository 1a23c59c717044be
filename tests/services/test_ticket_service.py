"""Tests for ticket validation, persistence and admin edits."""

from datetime import datetime

import pytest

from helpdesk.core.exceptions import NotFoundError, TicketValidationError
from helpdesk.core.settings import settings
from helpdesk.models.ticket import Ticket, TicketUpdate
from helpdesk.schemas.ticket import TicketAdminUpdate
from helpdesk.services import tickets as ticket_service


def test_tracking_id_format() -> None:
    assert ticket_service.generate_tracking_id(42, datetime(2025, 3, 7, 23, 59)) == "20250307-42"
    assert ticket_service.is_valid_tracking_id("20250307-42")
    assert not ticket_service.is_valid_tracking_id("2025037-42")
    assert not ticket_service.is_valid_tracking_id("20250307-")


def test_unknown_category_is_rejected() -> None:
    with pytest.raises(TicketValidationError) as excinfo:
        ticket_service.parse_ticket_payload({"category": "HARDWARE"})

    assert excinfo.value.errors == [{"field": "category", "message": "Invalid ticket category"}]


def test_validation_lists_every_missing_field() -> None:
    with pytest.raises(TicketValidationError) as excinfo:
        ticket_service.parse_ticket_payload({"name": "Juan"}, "TROUBLESHOOTING")

    fields = {error["field"] for error in excinfo.value.errors}
    assert {
        "email",
        "department",
        "typeOfEquipment",
        "modelOfEquipment",
        "serialNo",
        "specificProblem",
    } <= fields


def test_school_required_for_school_location(troubleshooting_form) -> None:
    with pytest.raises(TicketValidationError) as excinfo:
        ticket_service.parse_ticket_payload(
            troubleshooting_form(locationType="SCHOOL"), "TROUBLESHOOTING"
        )

    assert "School is required" in excinfo.value.errors[0]["message"]


def test_create_ticket_assigns_tracking_id(db_session, troubleshooting_form) -> None:
    form = ticket_service.parse_ticket_payload(troubleshooting_form(), "TROUBLESHOOTING")
    ticket = ticket_service.create_ticket(db_session, form)

    assert ticket.tracking_id == f"{ticket.created_at:%Y%m%d}-{ticket.id}"
    assert ticket.status == "PENDING"
    assert ticket.email == "juan.delacruz@example.com"
    assert ticket.location == settings.default_office_location
    assert ticket.details["serial_no"] == "SN-12345"
    assert ticket.details["date_of_request"] == "2025-03-07"
    assert "email" not in ticket.details


def test_school_location_uses_school_name(db_session, troubleshooting_form) -> None:
    payload = troubleshooting_form(locationType="SCHOOL", school="Imus Pilot Elementary School")
    form = ticket_service.parse_ticket_payload(payload, "TROUBLESHOOTING")
    ticket = ticket_service.create_ticket(db_session, form)

    assert ticket.location == "Imus Pilot Elementary School"


def test_find_by_tracking_requires_matching_email(db_session, troubleshooting_form) -> None:
    form = ticket_service.parse_ticket_payload(troubleshooting_form(), "TROUBLESHOOTING")
    ticket = ticket_service.create_ticket(db_session, form)

    found = ticket_service.find_by_tracking(db_session, ticket.tracking_id, "JUAN.DELACRUZ@example.com")
    assert found.id == ticket.id
    with pytest.raises(NotFoundError):
        ticket_service.find_by_tracking(db_session, ticket.tracking_id, "someone@example.com")


def test_category_details_per_category(db_session) -> None:
    form = ticket_service.parse_ticket_payload(
        {
            "name": "Maria Santos",
            "email": "maria@example.com",
            "department": "Administrative Service - Personnel Unit",
            "type": "Password Reset",
            "reason": "Forgot password",
            "accountType": "email",
        },
        "ACCOUNT_MANAGEMENT",
    )
    ticket = ticket_service.create_ticket(db_session, form)
    summary = ticket_service.category_details(ticket)

    assert summary.type == "Account Management"
    assert summary.details["request_type"] == "Password Reset"
    assert summary.details["account_type"] == "email"


def test_admin_update_ignores_fields_of_other_categories(db_session) -> None:
    form = ticket_service.parse_ticket_payload(
        {
            "name": "Maria Santos",
            "email": "maria@example.com",
            "department": "Finance Services - Budget Unit",
            "documentTitle": "Budget memo",
            "documentType": "official",
            "documentDescription": "Needs signature",
        },
        "DOCUMENT_UPLOAD",
    )
    ticket = ticket_service.create_ticket(db_session, form)

    update = TicketAdminUpdate.model_validate(
        {
            "priority": "URGENT",
            "diagnosis": "Routed to records",
            "documentTitle": "Budget memo (signed)",
            "serialNo": "ignored",
            "email": "attacker@example.com",
        }
    )
    assert ticket_service.apply_admin_update(db_session, ticket, update) is None

    assert ticket.priority == "URGENT"
    assert ticket.diagnosis == "Routed to records"
    assert ticket.details["document_title"] == "Budget memo (signed)"
    assert "serial_no" not in ticket.details
    assert ticket.email == "maria@example.com"


def test_admin_update_ignores_explicit_nulls(db_session, troubleshooting_form) -> None:
    form = ticket_service.parse_ticket_payload(troubleshooting_form(), "TROUBLESHOOTING")
    ticket = ticket_service.create_ticket(db_session, form)

    update = TicketAdminUpdate.model_validate(
        {"serialNo": None, "specificProblem": None, "diagnosis": None, "priority": "LOW"}
    )
    ticket_service.apply_admin_update(db_session, ticket, update)

    assert ticket.details["serial_no"] == "SN-12345"
    assert ticket.details["specific_problem"] == "Paper jam on every print job"
    assert ticket.priority == "LOW"


def test_admin_update_records_status_change(db_session, troubleshooting_form, admin_user) -> None:
    form = ticket_service.parse_ticket_payload(troubleshooting_form(), "TROUBLESHOOTING")
    ticket = ticket_service.create_ticket(db_session, form)

    update = TicketAdminUpdate.model_validate({"status": "RESOLVED"})
    history = ticket_service.apply_admin_update(
        db_session, ticket, update, updated_by_id=admin_user.id
    )

    assert ticket.status == "RESOLVED"
    assert history is not None
    assert history.previous_status == "PENDING"
    assert history.updated_by_id == admin_user.id
    assert db_session.query(TicketUpdate).filter_by(ticket_id=ticket.id).count() == 1


def test_change_status_records_history(db_session, troubleshooting_form, admin_user) -> None:
    form = ticket_service.parse_ticket_payload(troubleshooting_form(), "TROUBLESHOOTING")
    ticket = ticket_service.create_ticket(db_session, form)

    update = ticket_service.change_status(
        db_session, ticket, "IN_PROGRESS", comment="Technician assigned", updated_by_id=admin_user.id
    )

    assert ticket.status == "IN_PROGRESS"
    assert update.previous_status == "PENDING"
    assert update.new_status == "IN_PROGRESS"
    assert db_session.query(TicketUpdate).filter_by(ticket_id=ticket.id).count() == 1


def test_change_status_rejects_unknown_status(db_session, troubleshooting_form) -> None:
    form = ticket_service.parse_ticket_payload(troubleshooting_form(), "TROUBLESHOOTING")
    ticket = ticket_service.create_ticket(db_session, form)

    with pytest.raises(TicketValidationError):
        ticket_service.change_status(db_session, ticket, "DONE")


def test_list_tickets_filters_and_paginates(db_session, troubleshooting_form) -> None:
    for index in range(3):
        form = ticket_service.parse_ticket_payload(
            troubleshooting_form(email=f"user{index}@example.com"), "TROUBLESHOOTING"
        )
        ticket_service.create_ticket(db_session, form)

    page = ticket_service.list_tickets(db_session, page=1, limit=2)
    assert len(page.items) == 2
    assert page.pagination.total == 3
    assert page.pagination.total_pages == 2

    only = ticket_service.list_tickets(db_session, search="user1@")
    assert [item.email for item in only.items] == ["user1@example.com"]


def test_ticket_stats_counts_statuses(db_session, troubleshooting_form) -> None:
    for _ in range(2):
        form = ticket_service.parse_ticket_payload(troubleshooting_form(), "TROUBLESHOOTING")
        ticket_service.create_ticket(db_session, form)
    ticket = db_session.query(Ticket).first()
    ticket_service.change_status(db_session, ticket, "RESOLVED")

    stats = ticket_service.ticket_stats(db_session)

    assert stats["total_tickets"] == 2
    assert stats["pending_tickets"] == 1
    assert stats["resolved_tickets"] == 1
    assert stats["category_distribution"] == [{"category": "TROUBLESHOOTING", "count": 2}]
