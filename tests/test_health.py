# tests/test_health.py
from fastapi import status


def test_health(client) -> None:
    r = client.get("/health")

    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"status": "ok"}


def test_root_describes_service(client) -> None:
    r = client.get("/")

    assert r.status_code == status.HTTP_200_OK
    assert r.json()["docs"] == "/docs"


def test_categories(client) -> None:
    r = client.get("/api/v1/settings/categories")

    assert r.status_code == status.HTTP_200_OK
    names = [category["name"] for category in r.json()["categories"]]
    assert names == ["TROUBLESHOOTING", "ACCOUNT_MANAGEMENT", "DOCUMENT_UPLOAD"]
