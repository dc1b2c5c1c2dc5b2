"""Block-to-HTML content generation for newsletter emails.

The output is bare semantic HTML that relies on the email template's
stylesheet for presentation. Only ``<img>`` tags carry an inline
``max-width`` because email clients need explicit image constraints.
"""

import html
import re
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from newsletter_pipeline.infrastructure.logging import get_logger
from newsletter_pipeline.models.blocks import Block, BlockType
from newsletter_pipeline.services.rich_text import plain_text, render_inline

logger = get_logger(__name__)

DEFAULT_SKIP_SECTIONS = ("Collateral Checklist", "Review Questions")

VIDEO_DOMAINS = (
    "loom.com",
    "screen.studio",
    "youtube.com",
    "youtu.be",
    "vimeo.com",
    "screencast",
)

IMAGE_EMBED_PATTERN = re.compile(r"\.(gif|png|jpg|jpeg|webp)", re.IGNORECASE)

ImageUploader = Callable[[str, str], Awaitable[Optional[str]]]


class HeadingKind(str, Enum):
    """How a level-3 heading is presented."""

    HEADING = "heading"
    LABEL = "label"


@dataclass
class ContentOptions:
    """Options for :func:`generate_content_html`."""

    include_toc: bool = True
    upload_image: Optional[ImageUploader] = None
    page_id: str = ""
    skip_sections: Sequence[str] = DEFAULT_SKIP_SECTIONS


@dataclass(frozen=True)
class VideoMatch:
    """Result of looking past an image for a video link."""

    url: Optional[str] = None
    consumed: int = 0

    @property
    def matched(self) -> bool:
        return self.url is not None


def classify_heading(text: str) -> HeadingKind:
    """Subsection labels end with a colon; everything else is a heading."""
    if text.strip().endswith(":"):
        return HeadingKind.LABEL
    return HeadingKind.HEADING


def is_video_url(url: str) -> bool:
    return bool(url) and any(domain in url for domain in VIDEO_DOMAINS)


def match_video_link(blocks: Sequence[Block], index: int) -> VideoMatch:
    """Check whether the block after ``blocks[index]`` is a video link.

    An image followed by a paragraph or bookmark pointing at a video host is
    rendered as a clickable thumbnail, and the link block is consumed.
    """
    if index + 1 >= len(blocks):
        return VideoMatch()

    candidate = blocks[index + 1]
    url = ""
    if candidate.type == BlockType.PARAGRAPH:
        first_href = candidate.runs[0].href if candidate.runs else None
        url = first_href or plain_text(candidate.runs)
    elif candidate.type == BlockType.BOOKMARK:
        url = candidate.url or ""

    url = url.strip()
    if is_video_url(url):
        return VideoMatch(url=url, consumed=1)
    return VideoMatch()


def is_image_embed(url: str) -> bool:
    return bool(IMAGE_EMBED_PATTERN.search(url)) or "giphy" in url


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


def find_skip_section(blocks: Sequence[Block], skip_sections: Sequence[str]) -> int:
    """Index of the first level-2 heading listed in ``skip_sections``, else ``len(blocks)``."""
    for index, block in enumerate(blocks):
        if block.type == BlockType.HEADING_2 and plain_text(block.runs) in skip_sections:
            return index
    return len(blocks)


def _render_toc(blocks: Sequence[Block]) -> str:
    items = [
        plain_text(block.runs)
        for block in blocks
        if block.type == BlockType.HEADING_1 and plain_text(block.runs)
    ]
    if not items:
        return ""

    parts = ['<div class="toc-box">\n', "<p>In This Issue</p>\n", "<ul>\n"]
    for number, text in enumerate(items, start=1):
        parts.append(f"<li>{number}. {html.escape(text, quote=False)}</li>\n")
    parts.append("</ul>\n</div>\n")
    return "".join(parts)


async def _rehost_image(url: str, options: ContentOptions) -> str:
    if not (options.upload_image and options.page_id):
        return url
    try:
        permanent_url = await options.upload_image(url, options.page_id)
    except Exception as e:
        logger.warning("Image rehost failed, keeping original URL", url=url, error=str(e))
        return url
    if not permanent_url:
        logger.warning("Image rehost returned no URL, keeping original", url=url)
        return url
    return permanent_url


class _ListState:
    """Tracks which list container is open while rendering."""

    def __init__(self, parts: List[str]):
        self.parts = parts
        self.in_bullet_list = False
        self.in_numbered_list = False

    def close(self) -> None:
        if self.in_bullet_list:
            self.parts.append("</ul>\n")
            self.in_bullet_list = False
        if self.in_numbered_list:
            self.parts.append("</ol>\n")
            self.in_numbered_list = False

    def open_bullets(self) -> None:
        if not self.in_bullet_list:
            self.close()
            self.parts.append("<ul>\n")
            self.in_bullet_list = True

    def open_numbers(self) -> None:
        if not self.in_numbered_list:
            self.close()
            self.parts.append("<ol>\n")
            self.in_numbered_list = True


async def _render_image(block: Block, video: VideoMatch, options: ContentOptions) -> str:
    image_url = await _rehost_image(block.url, options)
    caption = plain_text(block.caption)
    img = f'<img src="{_attr(image_url)}" alt="{_attr(caption)}" style="max-width:100%;">'

    if video.matched:
        return (
            f'<a href="{_attr(video.url)}" target="_blank" style="display:block;text-decoration:none;">'
            f"{img}</a>\n"
            '<p class="video-caption">Tap image to view video</p>\n'
        )

    rendered = f"{img}\n"
    if caption:
        rendered += f'<p class="image-caption">{html.escape(caption, quote=False)}</p>\n'
    return rendered


def _render_simple(block: Block) -> str:
    """Render blocks that need no lookahead, rehosting or list state."""
    block_type = block.type

    if block_type == BlockType.HEADING_1:
        return f"<h1>{render_inline(block.runs)}</h1>\n"
    if block_type == BlockType.HEADING_2:
        return f"<h2>{render_inline(block.runs)}</h2>\n"
    if block_type == BlockType.HEADING_3:
        tag = "h4" if classify_heading(plain_text(block.runs)) == HeadingKind.LABEL else "h3"
        return f"<{tag}>{render_inline(block.runs)}</{tag}>\n"
    if block_type == BlockType.PARAGRAPH:
        text = render_inline(block.runs)
        return f"<p>{text}</p>\n" if text else ""
    if block_type == BlockType.QUOTE:
        return f"<blockquote>{render_inline(block.runs)}</blockquote>\n"
    if block_type == BlockType.DIVIDER:
        return "<hr>\n"
    if block_type == BlockType.CALLOUT:
        return f'<div class="callout">{render_inline(block.runs)}</div>\n'
    if block_type == BlockType.VIDEO:
        if not block.url:
            return ""
        return f'<p><a href="{_attr(block.url)}">Watch Video</a></p>\n'
    if block_type == BlockType.EMBED:
        if not block.url:
            return ""
        if is_image_embed(block.url):
            return f'<img src="{_attr(block.url)}" alt="Embedded content" style="max-width:100%;">\n'
        return f'<p><a href="{_attr(block.url)}">View Content</a></p>\n'

    # Bookmarks, to-dos and unsupported blocks are not part of the email body.
    return ""


async def generate_content_html(
    blocks: Sequence[Block],
    options: Optional[ContentOptions] = None,
) -> str:
    """Convert newsletter blocks to semantic HTML for the email body.

    Args:
        blocks: Ordered body blocks
        options: Table of contents, image rehosting and skip-section settings

    Returns:
        HTML fragment; every opened list is closed, and nothing after the
        first level-2 heading listed in ``skip_sections`` is rendered.
    """
    options = options or ContentOptions()
    blocks = blocks[:find_skip_section(blocks, options.skip_sections)]
    parts: List[str] = []
    lists = _ListState(parts)

    if options.include_toc:
        parts.append(_render_toc(blocks))

    index = 0
    while index < len(blocks):
        block = blocks[index]
        consumed = 0

        if block.type == BlockType.BULLETED_LIST_ITEM:
            lists.open_bullets()
            parts.append(f"  <li>{render_inline(block.runs)}</li>\n")
        elif block.type == BlockType.NUMBERED_LIST_ITEM:
            lists.open_numbers()
            parts.append(f"  <li>{render_inline(block.runs)}</li>\n")
        else:
            lists.close()
            if block.type == BlockType.IMAGE:
                if block.url:
                    video = match_video_link(blocks, index)
                    parts.append(await _render_image(block, video, options))
                    consumed = video.consumed
            else:
                parts.append(_render_simple(block))

        index += 1 + consumed

    lists.close()
    return "".join(parts)
