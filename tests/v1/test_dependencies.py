"""Tests for request-derived dependencies."""

from starlette.requests import Request

from helpdesk.api.v1.dependencies import get_client_ip


def _request(client=None, headers=()) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [(k.encode(), v.encode()) for k, v in headers],
            "client": client,
        }
    )


def test_client_ip_uses_peer_address() -> None:
    assert get_client_ip(_request(client=("198.51.100.4", 5000))) == "198.51.100.4"


def test_forwarded_header_ignored_without_trust() -> None:
    request = _request(client=("198.51.100.4", 5000), headers=[("x-forwarded-for", "10.0.0.1")])

    assert get_client_ip(request) == "198.51.100.4"


def test_clients_without_address_share_unknown_key() -> None:
    assert get_client_ip(_request()) == "unknown"
