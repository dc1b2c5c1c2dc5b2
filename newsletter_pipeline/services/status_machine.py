"""Status-driven send pipeline.

A newsletter moves Draft -> (Test | Ready) -> Sent. The trigger statuses are
set by an editor in the workspace, which fires a webhook; this module decides
whether the signal warrants a send, guards against sending twice, dispatches,
and only then advances the persisted status.
"""

import asyncio
import contextlib
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, List, Optional

from newsletter_pipeline.infrastructure.error_handling import DeliveryError
from newsletter_pipeline.infrastructure.logging import LoggerMixin
from newsletter_pipeline.models.newsletter import SendMode
from newsletter_pipeline.services.delivery import DeliveryDispatcher
from newsletter_pipeline.services.html_generator import ContentOptions, generate_content_html
from newsletter_pipeline.services.newsletter_store import NewsletterStore
from newsletter_pipeline.services.recipients import RecipientResolver


class StatusAction(str, Enum):
    """What handling a status signal amounted to."""

    IGNORED = "ignored"
    ALREADY_SENT = "already_sent"
    TEST_SENT = "test_sent"
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class StatusValues:
    """Status names as they appear in the workspace."""

    draft: str = "Draft"
    test_trigger: str = "Test"
    ready_trigger: str = "Ready"
    sent: str = "Sent"


@dataclass
class StatusOutcome:
    """Result of handling one status signal."""

    action: StatusAction
    message: str = ""
    sent: Optional[int] = None
    failed: Optional[int] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.action != StatusAction.FAILED


class StatusMachine(LoggerMixin):
    """Interprets status signals and performs idempotent sends."""

    def __init__(
        self,
        store: NewsletterStore,
        resolver: RecipientResolver,
        dispatcher: DeliveryDispatcher,
        content_options: Optional[ContentOptions] = None,
        statuses: Optional[StatusValues] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.content_options = content_options or ContentOptions()
        self.statuses = statuses or StatusValues()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = defaultdict(int)

    def classify(self, status: Optional[str]) -> Optional[SendMode]:
        """Map an inbound status to a send mode, or None if it triggers nothing."""
        if status == self.statuses.ready_trigger:
            return SendMode.FULL
        if status == self.statuses.test_trigger:
            return SendMode.TEST
        return None

    @contextlib.asynccontextmanager
    async def _document_lock(self, document_id: str) -> AsyncIterator[None]:
        # Serialises duplicate signals for one document within this process.
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        self._lock_users[document_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[document_id] -= 1
            if not self._lock_users[document_id]:
                del self._lock_users[document_id]
                del self._locks[document_id]

    async def handle(self, document_id: str, status: Optional[str]) -> StatusOutcome:
        """Handle one (document, status) signal.

        A full send moves the document to the sent status. A test send goes
        to the test recipient only and returns the document to Draft.

        Args:
            document_id: Newsletter page identifier
            status: Inbound status value

        Returns:
            Outcome; FAILED outcomes leave the persisted status untouched so
            a redelivered signal can retry safely
        """
        mode = self.classify(status)
        if mode is None:
            self.logger.info("Status does not trigger a send", document_id=document_id, status=status)
            return StatusOutcome(
                action=StatusAction.IGNORED,
                message=(
                    f'Status "{status}" does not trigger send. Only '
                    f'"{self.statuses.ready_trigger}" and "{self.statuses.test_trigger}" trigger sends.'
                ),
            )

        async with self._document_lock(document_id):
            try:
                return await self._send(document_id, mode)
            except Exception as e:
                self.logger.error(
                    "Newsletter send failed",
                    document_id=document_id,
                    mode=mode.value,
                    error=str(e),
                    exc_info=True,
                )
                return StatusOutcome(action=StatusAction.FAILED, error=str(e) or type(e).__name__)

    async def _send(self, document_id: str, mode: SendMode) -> StatusOutcome:
        current = await self.store.get_status(document_id)
        if current == self.statuses.sent:
            self.logger.info("Newsletter already sent, skipping", document_id=document_id)
            return StatusOutcome(action=StatusAction.ALREADY_SENT, message="Newsletter already sent")

        newsletter = await self.store.fetch_newsletter(document_id)
        options = ContentOptions(
            include_toc=self.content_options.include_toc,
            upload_image=self.content_options.upload_image,
            page_id=document_id,
            skip_sections=self.content_options.skip_sections,
        )
        content_html = await generate_content_html(newsletter.blocks, options)

        recipients, used_fallback = await self.resolver.resolve_with_fallback(newsletter, mode)
        result = await self.dispatcher.send_all(newsletter, content_html, recipients)

        if result.all_failed:
            raise DeliveryError(f"All {result.failed} send(s) failed")

        if mode == SendMode.FULL:
            await self.store.mark_sent(document_id, self.statuses.sent)
            action = StatusAction.SENT
            message = "Newsletter sent successfully"
            if used_fallback:
                message = "Newsletter sent to fallback recipient (no audience match)"
        else:
            await self.store.update_status(document_id, self.statuses.draft)
            action = StatusAction.TEST_SENT
            message = "Test newsletter sent"

        self.logger.info(
            "Newsletter dispatch complete",
            document_id=document_id,
            action=action.value,
            sent=result.sent,
            failed=result.failed,
        )
        return StatusOutcome(action=action, message=message, sent=result.sent, failed=result.failed)

    async def send_ready(self) -> List[StatusOutcome]:
        """Send every newsletter currently waiting in the full-send status."""
        newsletters = await self.store.query_by_status(self.statuses.ready_trigger)
        self.logger.info("Found newsletters ready to send", count=len(newsletters))

        outcomes = []
        for newsletter in newsletters:
            outcomes.append(await self.handle(newsletter.id, self.statuses.ready_trigger))
        return outcomes
