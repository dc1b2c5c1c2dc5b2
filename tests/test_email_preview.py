from newsletter_pipeline.models.newsletter import Recipient
from newsletter_pipeline.services.email_preview import EmailPreviewService


def test_preview_renders_data_variables(newsletter) -> None:
    service = EmailPreviewService()

    html = service.render(
        newsletter,
        '<h1>Acme renewal</h1>\n<div class="callout">note</div>\n',
        recipient=Recipient(email="ana@example.com", first_name="Ana"),
    )

    assert "Customer Wins #12" in html
    assert "2025-03-14" in html
    assert "Hi Ana," in html
    assert "Acme renewal" in html
    assert 'class="callout"' in html


def test_preview_inlines_css(newsletter) -> None:
    html = EmailPreviewService().render(newsletter, "<blockquote>quoted</blockquote>")

    assert "<blockquote" in html
    assert "border-left" in html.split("<blockquote", 1)[1].split(">", 1)[0]


def test_preview_default_first_name(newsletter) -> None:
    html = EmailPreviewService().render(newsletter, "")

    assert "Hi there," in html
