"""Local email preview rendering.

Renders the same data variables the email API receives into a local copy of
the email layout, so an editor can check a newsletter before sending it.
"""

from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader
from premailer import Premailer

from newsletter_pipeline.infrastructure.config import get_templates_dir
from newsletter_pipeline.infrastructure.logging import LoggerMixin
from newsletter_pipeline.models.newsletter import Newsletter, Recipient
from newsletter_pipeline.services.delivery import build_data_variables

PREVIEW_TEMPLATE = "email/newsletter.html"


class EmailPreviewService(LoggerMixin):
    """Renders newsletters to standalone HTML with inlined CSS."""

    def __init__(self, templates_dir: Optional[Path] = None):
        self.templates_dir = templates_dir or get_templates_dir()
        self.jinja_env = self._setup_jinja_environment()
        self.css_inliner = Premailer(
            remove_classes=False,
            keep_style_tags=True,
            strip_important=False,
            disable_validation=True,
        )

    def _setup_jinja_environment(self) -> Environment:
        """Set up Jinja2 environment.

        Autoescape stays off: the content, highlights and collateral variables
        are already HTML, exactly as the email API receives them.
        """
        return Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(
        self,
        newsletter: Newsletter,
        content_html: str,
        recipient: Optional[Recipient] = None,
    ) -> str:
        """Render a full preview document."""
        recipient = recipient or Recipient(email="preview@example.com")
        variables = build_data_variables(newsletter, content_html, recipient)

        template = self.jinja_env.get_template(PREVIEW_TEMPLATE)
        rendered = template.render(**variables)

        self.logger.info(
            "Rendered email preview",
            document_id=newsletter.id,
            size_kb=round(len(rendered.encode("utf-8")) / 1024, 1),
        )
        return self._inline_css(rendered)

    def _inline_css(self, html_content: str) -> str:
        """Inline CSS styles the way email clients need them."""
        try:
            return self.css_inliner.transform(html_content)
        except Exception as e:
            self.logger.warning("Failed to inline CSS, using original HTML", error=str(e))
            return html_content
