"""Markdown-to-block conversion for newsletter drafts.

Drafts and revisions come back from the language model as markdown. Each
non-blank line becomes exactly one block; blank lines are dropped.
"""

import re
from typing import List, Optional, Sequence

from newsletter_pipeline.models.blocks import Block, BlockType
from newsletter_pipeline.services.rich_text import parse_inline, plain_text, render_markdown_inline

IMAGE_LINE_PATTERN = re.compile(r"^!\[([^\]]*)\]\(([^)]+)\)$")
LABEL_LINE_PATTERN = re.compile(r"^<h4>(.+?)</h4>$")
NUMBERED_LINE_PATTERN = re.compile(r"^\d+\. ")

# The block model has three heading levels; deeper markdown headings fold
# into level 3. Longest prefix first.
HEADING_PREFIXES = (
    ("#### ", 3),
    ("### ", 3),
    ("## ", 2),
    ("# ", 1),
)

BULLET_PREFIXES = ("- ", "* ")
QUOTE_PREFIX = "> "


def _parse_heading(line: str) -> Optional[Block]:
    for prefix, level in HEADING_PREFIXES:
        if line.startswith(prefix):
            return Block.heading(level, parse_inline(line[len(prefix):]))
    return None


def parse_markdown_line(line: str) -> Block:
    """Classify one non-blank markdown line into a block."""
    stripped = line.strip()

    # Older drafts wrote subsection labels as literal <h4> tags.
    label = LABEL_LINE_PATTERN.match(line)
    if label:
        return Block.heading(3, parse_inline(label.group(1)))

    image = IMAGE_LINE_PATTERN.match(stripped)
    if image and image.group(2).startswith(("http://", "https://")):
        return Block.image(image.group(2), parse_inline(image.group(1)))

    heading = _parse_heading(line)
    if heading is not None:
        return heading

    if line.startswith(BULLET_PREFIXES):
        return Block.bullet(parse_inline(line[2:]))

    numbered = NUMBERED_LINE_PATTERN.match(line)
    if numbered:
        return Block.numbered(parse_inline(line[numbered.end():]))

    if line.startswith(QUOTE_PREFIX):
        return Block.quote(parse_inline(line[len(QUOTE_PREFIX):]))

    if stripped == "---":
        return Block.divider()

    return Block.paragraph(parse_inline(line))


def parse_markdown_to_blocks(markdown: Optional[str]) -> List[Block]:
    """Parse a markdown document into body blocks, one per non-blank line."""
    if not markdown:
        return []
    return [parse_markdown_line(line) for line in markdown.splitlines() if line.strip()]


def block_to_markdown(block: Block) -> str:
    """Render one block as a markdown line, or ``""`` when it has no text form."""
    text = render_markdown_inline(block.runs)
    block_type = block.type

    if block.heading_level:
        return f"{'#' * block.heading_level} {text}"
    if block_type == BlockType.PARAGRAPH:
        return text
    if block_type == BlockType.BULLETED_LIST_ITEM:
        return f"- {text}"
    if block_type == BlockType.NUMBERED_LIST_ITEM:
        return f"1. {text}"
    if block_type == BlockType.TO_DO:
        return f"- [{'x' if block.checked else ' '}] {text}"
    if block_type == BlockType.QUOTE:
        return f"> {text}"
    if block_type == BlockType.CALLOUT:
        return f"> **Note:** {text}"
    if block_type == BlockType.DIVIDER:
        return "---"
    if block_type == BlockType.IMAGE and block.url:
        return f"![{plain_text(block.caption)}]({block.url})"
    return ""


def blocks_to_markdown(blocks: Sequence[Block]) -> str:
    """Render body blocks as a markdown document for review."""
    lines = [block_to_markdown(block) for block in blocks]
    return "\n\n".join(line for line in lines if line)
