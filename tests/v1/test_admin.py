"""Tests for the administrator dashboard endpoints."""

from unittest.mock import AsyncMock

from fastapi import status

from helpdesk.services.email import get_email_service


def _submit(client, issue_captcha, troubleshooting_form, **overrides) -> dict:
    r = client.post(
        "/api/v1/tickets/troubleshooting",
        json={**troubleshooting_form(**overrides), **issue_captcha()},
    )
    assert r.status_code == status.HTTP_201_CREATED, r.text
    return r.json()


def test_stats_require_admin(client, user_headers) -> None:
    assert client.get("/api/v1/admin/stats").status_code == status.HTTP_401_UNAUTHORIZED
    assert client.get("/api/v1/admin/stats", headers=user_headers).status_code == 403


def test_stats_count_tickets(client, admin_headers, issue_captcha, troubleshooting_form) -> None:
    _submit(client, issue_captcha, troubleshooting_form)
    _submit(client, issue_captcha, troubleshooting_form, email="other@example.com")

    r = client.get("/api/v1/admin/stats", headers=admin_headers)

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["totalTickets"] == 2
    assert data["pendingTickets"] == 2
    assert data["statusDistribution"] == [{"status": "PENDING", "count": 2}]


def test_admin_ticket_listing_filters(
    client, admin_headers, issue_captcha, troubleshooting_form
) -> None:
    _submit(client, issue_captcha, troubleshooting_form)
    _submit(client, issue_captcha, troubleshooting_form, department="Legal Services Unit 2")

    r = client.get(
        "/api/v1/admin/tickets",
        params={"department": "Legal Services Unit 2"},
        headers=admin_headers,
    )

    assert r.status_code == status.HTTP_200_OK
    assert r.json()["pagination"]["total"] == 1


def test_status_update_writes_history_and_notifies(
    app,
    client,
    admin_headers,
    issue_captcha,
    troubleshooting_form,
    enabled_email_service,
    monkeypatch,
) -> None:
    created = _submit(client, issue_captcha, troubleshooting_form)
    app.dependency_overrides[get_email_service] = lambda: enabled_email_service
    send = AsyncMock()
    monkeypatch.setattr("helpdesk.services.email.aiosmtplib.send", send)

    r = client.put(
        f"/api/v1/admin/tickets/{created['ticketId']}/status",
        json={"status": "IN_PROGRESS", "comment": "On the way"},
        headers=admin_headers,
    )

    assert r.status_code == status.HTTP_200_OK, r.text
    data = r.json()
    assert data["status"] == "IN_PROGRESS"
    assert data["updates"][0]["previousStatus"] == "PENDING"
    assert data["updates"][0]["comment"] == "On the way"
    send.assert_awaited_once()


def test_status_update_unknown_ticket(client, admin_headers) -> None:
    r = client.put(
        "/api/v1/admin/tickets/9999/status", json={"status": "CLOSED"}, headers=admin_headers
    )

    assert r.status_code == status.HTTP_404_NOT_FOUND


def test_status_update_invalid_status(client, admin_headers) -> None:
    r = client.put(
        "/api/v1/admin/tickets/1/status", json={"status": "DONE"}, headers=admin_headers
    )

    assert r.status_code == status.HTTP_400_BAD_REQUEST


def test_email_test_requires_configuration(client, admin_headers) -> None:
    r = client.post(
        "/api/v1/admin/email/test", json={"recipient": "it@example.com"}, headers=admin_headers
    )

    assert r.status_code == status.HTTP_400_BAD_REQUEST


def test_email_test_is_queued(
    app, client, admin_headers, enabled_email_service, monkeypatch
) -> None:
    app.dependency_overrides[get_email_service] = lambda: enabled_email_service
    send = AsyncMock()
    monkeypatch.setattr("helpdesk.services.email.aiosmtplib.send", send)

    r = client.post(
        "/api/v1/admin/email/test", json={"recipient": "it@example.com"}, headers=admin_headers
    )

    assert r.status_code == status.HTTP_200_OK
    assert send.await_args.args[0]["To"] == "it@example.com"
