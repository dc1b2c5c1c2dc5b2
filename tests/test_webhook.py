from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from newsletter_pipeline.api.webhook import create_app, extract_page_id, extract_status
from newsletter_pipeline.infrastructure.config import ApplicationConfig
from newsletter_pipeline.services.status_machine import StatusAction, StatusOutcome

SECRET = "s3cret"
ENDPOINT = "/api/newsletter-status"


@pytest.fixture
def status_machine() -> SimpleNamespace:
    return SimpleNamespace(
        handle=AsyncMock(
            return_value=StatusOutcome(
                action=StatusAction.SENT,
                message="Newsletter sent successfully",
                sent=3,
                failed=0,
            )
        )
    )


@pytest.fixture
def client(status_machine) -> TestClient:
    config = ApplicationConfig(webhook_secret=SECRET)
    app = create_app(config, pipeline=SimpleNamespace(status_machine=status_machine))
    return TestClient(app)


def post(client: TestClient, body, secret: str | None = SECRET):
    headers = {"x-webhook-secret": secret} if secret is not None else {}
    return client.post(ENDPOINT, json=body, headers=headers)


def test_successful_send(client, status_machine) -> None:
    response = post(client, {"pageId": "page-1", "status": "Ready"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Newsletter sent successfully",
        "sent": 3,
        "failed": 0,
    }
    status_machine.handle.assert_awaited_once_with("page-1", "Ready")


def test_ignored_status_omits_counts(client, status_machine) -> None:
    status_machine.handle.return_value = StatusOutcome(
        action=StatusAction.IGNORED, message='Status "Draft" does not trigger send.'
    )

    response = post(client, {"pageId": "page-1", "status": "Draft"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": 'Status "Draft" does not trigger send.'}


def test_failed_outcome_is_server_error(client, status_machine) -> None:
    status_machine.handle.return_value = StatusOutcome(action=StatusAction.FAILED, error="store unreachable")

    response = post(client, {"pageId": "page-1", "status": "Ready"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "store unreachable"}


@pytest.mark.parametrize("secret", [None, "wrong"])
def test_invalid_secret_is_rejected(client, status_machine, secret) -> None:
    response = post(client, {"pageId": "page-1", "status": "Ready"}, secret=secret)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid webhook secret"}
    status_machine.handle.assert_not_awaited()


def test_secret_not_required_when_unset(status_machine) -> None:
    app = create_app(ApplicationConfig(), pipeline=SimpleNamespace(status_machine=status_machine))

    response = TestClient(app).post(ENDPOINT, json={"pageId": "page-1", "status": "Test"})

    assert response.status_code == 200
    status_machine.handle.assert_awaited_once_with("page-1", "Test")


def test_non_post_is_rejected(client) -> None:
    response = client.get(ENDPOINT)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Method not allowed. Use POST."}


def test_options_returns_cors_headers(client) -> None:
    response = client.options(ENDPOINT)

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "x-webhook-secret" in response.headers["access-control-allow-headers"]


def test_missing_page_id(client, status_machine) -> None:
    response = post(client, {"status": "Ready"})

    assert response.status_code == 400
    assert response.json()["success"] is False
    status_machine.handle.assert_not_awaited()


def test_invalid_json_body_is_missing_page_id(client) -> None:
    response = client.post(
        ENDPOINT,
        content=b"not json",
        headers={"x-webhook-secret": SECRET, "content-type": "application/json"},
    )

    assert response.status_code == 400


def test_missing_status_defaults_to_full_send_trigger(client, status_machine) -> None:
    response = post(client, {"data": {"id": "page-9"}})

    assert response.status_code == 200
    status_machine.handle.assert_awaited_once_with("page-9", "Ready")


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"pageId": "a"}, "a"),
        ({"data": {"id": "b"}}, "b"),
        ({"id": "c"}, "c"),
        ({"page": {"id": "d"}}, "d"),
        ({"pageID": "e"}, "e"),
        ({"pageId": "", "id": "f"}, "f"),
        ({}, None),
        (["not", "a", "dict"], None),
    ],
)
def test_extract_page_id(body, expected) -> None:
    assert extract_page_id(body) == expected


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"status": "Test"}, "Test"),
        ({"data": {"properties": {"Status": {"status": {"name": "Ready"}}}}}, "Ready"),
        ({"properties": {"Status": {"status": {"name": "Draft"}}}}, "Draft"),
        ({"status": {"name": "Ready"}}, None),
        ({}, None),
    ],
)
def test_extract_status(body, expected) -> None:
    assert extract_status(body) == expected
