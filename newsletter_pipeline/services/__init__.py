"""Services for rendering, addressing and sending newsletters."""

from .delivery import DeliveryDispatcher
from .email_preview import EmailPreviewService
from .html_generator import ContentOptions, generate_content_html
from .markdown_parser import blocks_to_markdown, parse_markdown_to_blocks
from .newsletter_store import NewsletterStore
from .recipients import RecipientResolver
from .rich_text import parse_inline, render_inline
from .status_machine import StatusAction, StatusMachine, StatusOutcome, StatusValues

__all__ = [
    "DeliveryDispatcher",
    "EmailPreviewService",
    "ContentOptions",
    "generate_content_html",
    "blocks_to_markdown",
    "parse_markdown_to_blocks",
    "NewsletterStore",
    "RecipientResolver",
    "parse_inline",
    "render_inline",
    "StatusAction",
    "StatusMachine",
    "StatusOutcome",
    "StatusValues",
]
