"""Recipient resolution for newsletter sends."""

from typing import List, Protocol, Sequence, Tuple

from newsletter_pipeline.infrastructure.logging import LoggerMixin
from newsletter_pipeline.models.newsletter import Newsletter, Recipient, SendMode


class ContactDirectory(Protocol):
    async def query_contacts(self, tags: Sequence[str]) -> List[Recipient]:
        ...


class RecipientResolver(LoggerMixin):
    """Turns a newsletter's audience into concrete recipients.

    Never returns an empty list: an unaddressed newsletter, or one whose
    audience matches nobody, goes to the fixed test recipient instead.
    """

    def __init__(self, contacts: ContactDirectory, test_recipient: Recipient):
        self.contacts = contacts
        self.test_recipient = test_recipient

    async def resolve(self, newsletter: Newsletter, mode: SendMode) -> List[Recipient]:
        recipients, _ = await self.resolve_with_fallback(newsletter, mode)
        return recipients

    async def resolve_with_fallback(
        self,
        newsletter: Newsletter,
        mode: SendMode,
    ) -> Tuple[List[Recipient], bool]:
        """Resolve recipients and report whether a full send fell back to the test recipient."""
        if mode == SendMode.TEST:
            return [self.test_recipient], False

        if not newsletter.audience:
            self.logger.warning(
                "Newsletter has no audience, falling back to test recipient",
                document_id=newsletter.id,
            )
            return [self.test_recipient], True

        matched = await self.contacts.query_contacts(newsletter.audience)
        recipients = [recipient for recipient in matched if recipient.email]

        if not recipients:
            self.logger.warning(
                "No contacts matched audience, falling back to test recipient",
                document_id=newsletter.id,
                audience=newsletter.audience,
            )
            return [self.test_recipient], True

        self.logger.info(
            "Resolved recipients",
            document_id=newsletter.id,
            audience=newsletter.audience,
            recipients=len(recipients),
        )
        return recipients, False
