from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from newsletter_pipeline.infrastructure.api_clients.loops_api import LoopsResponse
from newsletter_pipeline.models.blocks import Block, InlineRun
from newsletter_pipeline.models.newsletter import Newsletter, Recipient
from newsletter_pipeline.services.delivery import DeliveryDispatcher
from newsletter_pipeline.services.html_generator import ContentOptions
from newsletter_pipeline.services.recipients import RecipientResolver
from newsletter_pipeline.services.status_machine import StatusMachine

TEST_RECIPIENT = Recipient(email="newsletter-test@example.com", first_name="Team")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    import os

    for key in list(os.environ):
        if key.startswith("NEWSLETTER_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def newsletter() -> Newsletter:
    return Newsletter(
        id="page-123",
        title="Customer Wins #12",
        issue_date="2025-03-14",
        status="Ready",
        audience=["Sales"],
        highlights=[InlineRun(text="Acme", bold=True), InlineRun.plain(" renewed")],
        blocks=[
            Block.heading(1, [InlineRun.plain("Acme renewal")]),
            Block.paragraph([InlineRun.plain("They signed for three years.")]),
        ],
    )


@pytest.fixture
def email_client() -> MagicMock:
    client = MagicMock()
    client.is_configured = True
    client.send_transactional = AsyncMock(return_value=LoopsResponse(status=200, body="{}"))
    return client


@pytest.fixture
def store(newsletter: Newsletter) -> MagicMock:
    fake = MagicMock()
    fake.get_status = AsyncMock(return_value="Ready")
    fake.fetch_newsletter = AsyncMock(return_value=newsletter)
    fake.update_status = AsyncMock()
    fake.mark_sent = AsyncMock()
    fake.query_contacts = AsyncMock(
        return_value=[
            Recipient(email="ana@example.com", first_name="Ana"),
            Recipient(email="ben@example.com"),
        ]
    )
    fake.query_by_status = AsyncMock(return_value=[])
    return fake


@pytest.fixture
def status_machine(store: MagicMock, email_client: MagicMock) -> StatusMachine:
    return StatusMachine(
        store,
        RecipientResolver(store, TEST_RECIPIENT),
        DeliveryDispatcher(email_client, send_delay_seconds=0),
        content_options=ContentOptions(include_toc=False),
    )
