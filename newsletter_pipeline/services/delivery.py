"""Delivery dispatcher with Loops transactional email integration."""

import asyncio
from typing import Any, Dict, Sequence

from newsletter_pipeline.infrastructure.api_clients import LoopsClient
from newsletter_pipeline.infrastructure.logging import LoggerMixin
from newsletter_pipeline.models.newsletter import Newsletter, Recipient, SendResult
from newsletter_pipeline.services.rich_text import format_highlights, render_inline

DEFAULT_FIRST_NAME = "there"


def build_data_variables(
    newsletter: Newsletter,
    content_html: str,
    recipient: Recipient,
) -> Dict[str, Any]:
    """Template variables for one recipient."""
    return {
        "issueTitle": newsletter.title,
        "issueDate": newsletter.issue_date,
        "highlights": format_highlights(render_inline(newsletter.highlights)),
        "contentHtml": content_html,
        "collateralHtml": newsletter.collateral,
        "firstName": recipient.first_name or DEFAULT_FIRST_NAME,
    }


class DeliveryDispatcher(LoggerMixin):
    """Sends a newsletter to each recipient, one at a time."""

    def __init__(self, email_client: LoopsClient, send_delay_seconds: float = 0.1):
        self.email_client = email_client
        self.send_delay_seconds = send_delay_seconds

    async def send_all(
        self,
        newsletter: Newsletter,
        content_html: str,
        recipients: Sequence[Recipient],
    ) -> SendResult:
        """Send serially, isolating each recipient's failure.

        Args:
            newsletter: Newsletter being sent
            content_html: Rendered body HTML
            recipients: Resolved recipients

        Returns:
            Count of sent and failed deliveries
        """
        result = SendResult()

        if not self.email_client.is_configured:
            self.logger.warning(
                "Email API not configured, skipping send",
                document_id=newsletter.id,
            )
            return result

        self.logger.info(
            "Sending newsletter",
            document_id=newsletter.id,
            title=newsletter.title,
            recipients=len(recipients),
        )

        for position, recipient in enumerate(recipients):
            if position > 0 and self.send_delay_seconds:
                await asyncio.sleep(self.send_delay_seconds)

            try:
                response = await self.email_client.send_transactional(
                    recipient.email,
                    build_data_variables(newsletter, content_html, recipient),
                )
            except Exception as e:
                result.failed += 1
                self.logger.error(
                    "Error sending newsletter",
                    document_id=newsletter.id,
                    recipient=recipient.email,
                    error=str(e),
                    exc_info=True,
                )
                continue

            if response.ok:
                result.sent += 1
            else:
                result.failed += 1
                self.logger.error(
                    "Newsletter delivery failed",
                    document_id=newsletter.id,
                    recipient=recipient.email,
                    status=response.status,
                    body=response.body,
                )

        self.logger.info(
            "Newsletter dispatch finished",
            document_id=newsletter.id,
            sent=result.sent,
            failed=result.failed,
        )
        return result
