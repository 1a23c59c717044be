"""Tests for SMTP notifications."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

from helpdesk.models.ticket import Ticket, TicketUpdate
from helpdesk.services.email import EmailService


def _ticket() -> Ticket:
    return Ticket(
        id=7,
        tracking_id="20250307-7",
        category="TROUBLESHOOTING",
        status="PENDING",
        priority="HIGH",
        name="Juan <script>",
        email="juan@example.com",
        details={},
        created_at=datetime(2025, 3, 7, 8, 30),
    )


def test_disabled_service_sends_nothing(email_service: EmailService, monkeypatch) -> None:
    send = AsyncMock()
    monkeypatch.setattr("helpdesk.services.email.aiosmtplib.send", send)

    assert asyncio.run(email_service.send_ticket_confirmation(_ticket())) is False
    send.assert_not_awaited()


def test_confirmation_is_sent(enabled_email_service: EmailService, monkeypatch) -> None:
    send = AsyncMock()
    monkeypatch.setattr("helpdesk.services.email.aiosmtplib.send", send)

    assert asyncio.run(enabled_email_service.send_ticket_confirmation(_ticket())) is True

    message = send.await_args.args[0]
    assert message["To"] == "juan@example.com"
    assert "20250307-7" in message["Subject"]
    html = message.get_payload()[1].get_payload(decode=True).decode()
    assert "&lt;script&gt;" in html
    assert send.await_args.kwargs["hostname"] == "smtp.example.com"


def test_send_failure_is_swallowed(enabled_email_service: EmailService, monkeypatch) -> None:
    monkeypatch.setattr(
        "helpdesk.services.email.aiosmtplib.send",
        AsyncMock(side_effect=OSError("connection refused")),
    )

    assert asyncio.run(enabled_email_service.send_ticket_confirmation(_ticket())) is False


def test_status_update_mentions_both_statuses(
    enabled_email_service: EmailService, monkeypatch
) -> None:
    send = AsyncMock()
    monkeypatch.setattr("helpdesk.services.email.aiosmtplib.send", send)
    update = TicketUpdate(previous_status="PENDING", new_status="RESOLVED", comment="Replaced toner")

    assert asyncio.run(enabled_email_service.send_status_update(_ticket(), update)) is True

    text = send.await_args.args[0].get_payload()[0].get_payload(decode=True).decode()
    assert "PENDING" in text and "RESOLVED" in text
    assert "Replaced toner" in text
