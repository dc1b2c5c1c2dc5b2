import re
from unittest.mock import AsyncMock

import pytest

from newsletter_pipeline.models.blocks import Block, BlockType, InlineRun
from newsletter_pipeline.services.html_generator import (
    ContentOptions,
    HeadingKind,
    classify_heading,
    find_skip_section,
    generate_content_html,
    match_video_link,
)


def text(value: str):
    return [InlineRun.plain(value)]


NO_TOC = ContentOptions(include_toc=False)


@pytest.mark.asyncio
async def test_skip_section_truncates_everything_after_it() -> None:
    blocks = [
        Block.heading(2, text("Feature A")),
        Block.bullet(text("x")),
        Block.bullet(text("y")),
        Block.heading(2, text("Collateral Checklist")),
        Block.bullet(text("ignored")),
    ]

    html = await generate_content_html(
        blocks, ContentOptions(include_toc=False, skip_sections=["Collateral Checklist"])
    )

    assert html.count("<h2>Feature A</h2>") == 1
    assert html.count("<ul>") == 1
    assert html.count("<li>") == 2
    assert "Collateral Checklist" not in html
    assert "ignored" not in html


@pytest.mark.asyncio
async def test_table_of_contents_stops_at_skip_section() -> None:
    blocks = [
        Block.heading(1, text("Acme")),
        Block.heading(2, text("Review Questions")),
        Block.heading(1, text("INTERNAL ONLY")),
    ]

    html = await generate_content_html(blocks, ContentOptions())

    assert "<li>1. Acme</li>" in html
    assert "INTERNAL ONLY" not in html
    assert "Review Questions" not in html


def test_find_skip_section() -> None:
    blocks = [
        Block.heading(1, text("Collateral Checklist")),
        Block.paragraph(text("body")),
        Block.heading(2, text("Collateral Checklist")),
    ]

    assert find_skip_section(blocks, ["Collateral Checklist"]) == 2
    assert find_skip_section(blocks, []) == 3


@pytest.mark.asyncio
async def test_list_tags_are_balanced() -> None:
    blocks = [
        Block.bullet(text("a")),
        Block.numbered(text("1")),
        Block.numbered(text("2")),
        Block.paragraph(text("between")),
        Block.bullet(text("b")),
        Block.bullet(text("c")),
        Block.numbered(text("3")),
    ]

    html = await generate_content_html(blocks, NO_TOC)

    assert len(re.findall(r"<ul>", html)) == len(re.findall(r"</ul>", html)) == 2
    assert len(re.findall(r"<ol>", html)) == len(re.findall(r"</ol>", html)) == 2
    assert html.endswith("</ol>\n")


@pytest.mark.parametrize(
    "heading, kind",
    [
        ("Why This Matters", HeadingKind.HEADING),
        ("Summary:", HeadingKind.LABEL),
        ("The Problem:  ", HeadingKind.LABEL),
    ],
)
def test_classify_heading(heading: str, kind: HeadingKind) -> None:
    assert classify_heading(heading) == kind


@pytest.mark.asyncio
async def test_level_three_heading_and_label_rendering() -> None:
    blocks = [
        Block.heading(3, text("Why This Matters")),
        Block.heading(3, text("Summary:")),
    ]

    html = await generate_content_html(blocks, NO_TOC)

    assert "<h3>Why This Matters</h3>" in html
    assert "<h4>Summary:</h4>" in html


@pytest.mark.asyncio
async def test_table_of_contents_lists_level_one_headings() -> None:
    blocks = [
        Block.heading(1, text("Acme")),
        Block.paragraph(text("body")),
        Block.heading(1, text("Beta & Co")),
    ]

    html = await generate_content_html(blocks)

    assert html.startswith('<div class="toc-box">')
    assert "<li>1. Acme</li>" in html
    assert "<li>2. Beta &amp; Co</li>" in html


@pytest.mark.asyncio
async def test_no_table_of_contents_without_level_one_headings() -> None:
    html = await generate_content_html([Block.paragraph(text("only"))])

    assert html == "<p>only</p>\n"


def test_match_video_link_from_paragraph_href() -> None:
    blocks = [
        Block.image("https://cdn.example.com/thumb.png"),
        Block.paragraph([InlineRun(text="Watch the demo", href="https://www.loom.com/share/abc")]),
    ]

    match = match_video_link(blocks, 0)

    assert match.matched
    assert match.url == "https://www.loom.com/share/abc"
    assert match.consumed == 1


def test_match_video_link_ignores_non_video_and_last_block() -> None:
    blocks = [
        Block.image("https://cdn.example.com/thumb.png"),
        Block.paragraph(text("https://example.com/blog")),
    ]

    assert not match_video_link(blocks, 0).matched
    assert match_video_link(blocks, 1).consumed == 0


@pytest.mark.asyncio
async def test_image_followed_by_video_link_renders_thumbnail_and_consumes_link() -> None:
    blocks = [
        Block.image("https://cdn.example.com/thumb.png"),
        Block.bookmark("https://youtu.be/xyz"),
        Block.paragraph(text("after")),
    ]

    html = await generate_content_html(blocks, NO_TOC)

    assert '<a href="https://youtu.be/xyz"' in html
    assert '<p class="video-caption">Tap image to view video</p>' in html
    assert html.count("youtu.be") == 1
    assert html.endswith("<p>after</p>\n")


@pytest.mark.asyncio
async def test_image_with_caption() -> None:
    blocks = [Block.image("https://cdn.example.com/a.png", text("Dashboard"))]

    html = await generate_content_html(blocks, NO_TOC)

    assert html == (
        '<img src="https://cdn.example.com/a.png" alt="Dashboard" style="max-width:100%;">\n'
        '<p class="image-caption">Dashboard</p>\n'
    )


@pytest.mark.asyncio
async def test_image_is_rehosted_when_uploader_and_page_id_set() -> None:
    upload = AsyncMock(return_value="https://storage.example.com/page/abc.png")
    options = ContentOptions(include_toc=False, upload_image=upload, page_id="page-1")

    html = await generate_content_html([Block.image("https://s3.example.com/tmp.png?sig=1")], options)

    upload.assert_awaited_once_with("https://s3.example.com/tmp.png?sig=1", "page-1")
    assert 'src="https://storage.example.com/page/abc.png"' in html


@pytest.mark.asyncio
async def test_rehost_failure_keeps_original_url() -> None:
    upload = AsyncMock(side_effect=RuntimeError("bucket unavailable"))
    options = ContentOptions(include_toc=False, upload_image=upload, page_id="page-1")

    html = await generate_content_html([Block.image("https://s3.example.com/tmp.png")], options)

    assert 'src="https://s3.example.com/tmp.png"' in html


@pytest.mark.asyncio
async def test_rehost_skipped_without_page_id() -> None:
    upload = AsyncMock()
    options = ContentOptions(include_toc=False, upload_image=upload)

    await generate_content_html([Block.image("https://s3.example.com/tmp.png")], options)

    upload.assert_not_awaited()


@pytest.mark.asyncio
async def test_remaining_block_types() -> None:
    blocks = [
        Block.paragraph([]),
        Block.quote(text("quoted")),
        Block.divider(),
        Block.callout(text("note")),
        Block.video("https://vimeo.com/1"),
        Block.embed("https://media.giphy.com/party"),
        Block.embed("https://figma.com/file/1"),
        Block.image(""),
        Block.bookmark("https://example.com"),
        Block(BlockType.UNSUPPORTED),
    ]

    html = await generate_content_html(blocks, NO_TOC)

    assert html == (
        "<blockquote>quoted</blockquote>\n"
        "<hr>\n"
        '<div class="callout">note</div>\n'
        '<p><a href="https://vimeo.com/1">Watch Video</a></p>\n'
        '<img src="https://media.giphy.com/party" alt="Embedded content" style="max-width:100%;">\n'
        '<p><a href="https://figma.com/file/1">View Content</a></p>\n'
    )
