"""Newsletter and contact access on top of the Notion API."""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from newsletter_pipeline.infrastructure.api_clients import NotionAPIClient, NotionAPIError
from newsletter_pipeline.infrastructure.error_handling import handle_service_errors
from newsletter_pipeline.infrastructure.logging import LoggerMixin
from newsletter_pipeline.models.blocks import Block, runs_from_notion
from newsletter_pipeline.models.newsletter import Newsletter, Recipient
from newsletter_pipeline.services.markdown_parser import blocks_to_markdown, parse_markdown_to_blocks
from newsletter_pipeline.services.rich_text import plain_text

# Newsletter database properties
TITLE_PROPERTY = "Issue"
DATE_PROPERTY = "Issue date"
STATUS_PROPERTY = "Status"
AUDIENCE_PROPERTY = "Audience"
HIGHLIGHTS_PROPERTY = "Highlights"
PRIMARY_CUSTOMER_PROPERTY = "Primary customer"
COLLATERAL_PROPERTY = "Collateral"

# Contacts database properties
CONTACT_NAME_PROPERTY = "Name"
CONTACT_EMAIL_PROPERTY = "Email"
CONTACT_FIRST_NAME_PROPERTY = "First Name"
CONTACT_SUBSCRIBED_PROPERTY = "Subscribed"


def _property(page: Dict[str, Any], name: str) -> Dict[str, Any]:
    return (page.get("properties") or {}).get(name) or {}


def _property_text(page: Dict[str, Any], name: str) -> str:
    prop = _property(page, name)
    rich_text = prop.get("title") if "title" in prop else prop.get("rich_text")
    return plain_text(runs_from_notion(rich_text))


def status_from_page(page: Dict[str, Any]) -> str:
    """Read the Status property, whether it is a status or a select."""
    prop = _property(page, STATUS_PROPERTY)
    value = prop.get("status") or prop.get("select") or {}
    return value.get("name", "")


def audience_from_page(page: Dict[str, Any]) -> List[str]:
    """Read audience tags from a multi-select (or legacy single select)."""
    prop = _property(page, AUDIENCE_PROPERTY)
    if prop.get("multi_select") is not None:
        return [option["name"] for option in prop["multi_select"] if option.get("name")]
    selected = prop.get("select") or {}
    return [selected["name"]] if selected.get("name") else []


def newsletter_from_page(page: Dict[str, Any], blocks: Optional[List[Block]] = None) -> Newsletter:
    """Map a newsletter page (and optionally its body) onto a Newsletter."""
    issue_date = (_property(page, DATE_PROPERTY).get("date") or {}).get("start")
    return Newsletter(
        id=page["id"],
        url=page.get("url", ""),
        title=_property_text(page, TITLE_PROPERTY) or "Newsletter",
        issue_date=issue_date or date.today().isoformat(),
        status=status_from_page(page),
        audience=audience_from_page(page),
        highlights=runs_from_notion(_property(page, HIGHLIGHTS_PROPERTY).get("rich_text")),
        primary_customer=_property_text(page, PRIMARY_CUSTOMER_PROPERTY),
        collateral=_property_text(page, COLLATERAL_PROPERTY),
        blocks=list(blocks or []),
    )


def recipient_from_contact(page: Dict[str, Any]) -> Optional[Recipient]:
    """Map a contact page onto a Recipient, or None when it has no email."""
    email = (_property(page, CONTACT_EMAIL_PROPERTY).get("email") or "").strip()
    if not email:
        return None

    first_name = _property_text(page, CONTACT_FIRST_NAME_PROPERTY).strip()
    if not first_name:
        full_name = _property_text(page, CONTACT_NAME_PROPERTY).strip()
        first_name = full_name.split()[0] if full_name else ""

    return Recipient(email=email, first_name=first_name or None)


def contacts_filter(tags: Sequence[str], require_subscribed: bool = True) -> Dict[str, Any]:
    """Build a query filter matching contacts in any of the given audiences."""
    audience_filter = {
        "or": [
            {"property": AUDIENCE_PROPERTY, "multi_select": {"contains": tag}}
            for tag in tags
        ]
    }
    if not require_subscribed:
        return audience_filter
    return {
        "and": [
            audience_filter,
            {"property": CONTACT_SUBSCRIBED_PROPERTY, "checkbox": {"equals": True}},
        ]
    }


class NewsletterStore(LoggerMixin):
    """Reads and writes newsletters and contacts in the workspace."""

    def __init__(
        self,
        client: NotionAPIClient,
        newsletter_db_id: str = "",
        contacts_db_id: str = "",
        require_subscribed: bool = True,
    ):
        self.client = client
        self.newsletter_db_id = newsletter_db_id
        self.contacts_db_id = contacts_db_id
        self.require_subscribed = require_subscribed

    async def get_status(self, document_id: str) -> str:
        """Read the persisted status of a newsletter."""
        page = await self.client.retrieve_page(document_id)
        return status_from_page(page)

    async def fetch_blocks(self, document_id: str) -> List[Block]:
        children = await self.client.list_block_children(document_id)
        return [Block.from_notion(child) for child in children]

    @handle_service_errors("Newsletter store")
    async def fetch_newsletter(self, document_id: str) -> Newsletter:
        """Fetch a newsletter's properties and full body."""
        page = await self.client.retrieve_page(document_id)
        blocks = await self.fetch_blocks(document_id)
        newsletter = newsletter_from_page(page, blocks)

        self.logger.info(
            "Fetched newsletter",
            document_id=document_id,
            title=newsletter.title,
            blocks=len(blocks),
            audience=newsletter.audience,
        )
        return newsletter

    async def update_status(self, document_id: str, status: str) -> None:
        await self.client.update_page(
            document_id,
            {STATUS_PROPERTY: {"status": {"name": status}}},
        )
        self.logger.info("Updated newsletter status", document_id=document_id, status=status)

    async def mark_sent(self, document_id: str, sent_status: str = "Sent") -> None:
        await self.update_status(document_id, sent_status)

    @handle_service_errors("Newsletter store")
    async def query_contacts(self, tags: Sequence[str]) -> List[Recipient]:
        """Find contacts whose audience intersects the given tags."""
        if not tags or not self.contacts_db_id:
            return []

        pages = await self.client.query_database(
            self.contacts_db_id,
            contacts_filter(tags, self.require_subscribed),
        )
        recipients = []
        for page in pages:
            recipient = recipient_from_contact(page)
            if recipient is None:
                self.logger.debug("Skipping contact without email", contact_id=page.get("id"))
                continue
            recipients.append(recipient)

        self.logger.info("Queried contacts", tags=list(tags), matched=len(recipients))
        return recipients

    async def query_by_status(self, status: str) -> List[Newsletter]:
        """List newsletters currently in the given status (properties only)."""
        pages = await self.client.query_database(
            self.newsletter_db_id,
            {"property": STATUS_PROPERTY, "status": {"equals": status}},
        )
        return [newsletter_from_page(page) for page in pages]

    async def fetch_body_markdown(self, document_id: str) -> str:
        """Read a newsletter body as markdown for review."""
        return blocks_to_markdown(await self.fetch_blocks(document_id))

    async def clear_body(self, document_id: str) -> int:
        """Delete every child block; blocks that refuse deletion are skipped."""
        children = await self.client.list_block_children(document_id)
        deleted = 0
        for child in children:
            try:
                await self.client.delete_block(child["id"])
                deleted += 1
            except NotionAPIError as e:
                self.logger.warning(
                    "Could not delete block",
                    document_id=document_id,
                    block_id=child.get("id"),
                    error=str(e),
                )
        return deleted

    @handle_service_errors("Newsletter store")
    async def replace_body(self, document_id: str, markdown: str) -> int:
        """Replace a newsletter body wholesale with parsed markdown.

        Returns:
            Number of blocks written
        """
        blocks = parse_markdown_to_blocks(markdown)
        deleted = await self.clear_body(document_id)
        await self.client.append_block_children(document_id, [block.to_notion() for block in blocks])

        self.logger.info(
            "Replaced newsletter body",
            document_id=document_id,
            deleted=deleted,
            written=len(blocks),
        )
        return len(blocks)
