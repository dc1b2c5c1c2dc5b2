"""Block and inline-run models for newsletter bodies.

The workspace store (Notion) represents a page body as an ordered list of
typed blocks, each carrying an array of annotated text runs. These dataclasses
mirror that shape closely enough to map both ways, while staying independent
of the store's JSON.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# Notion rejects text objects longer than this.
MAX_TEXT_LENGTH = 2000


class BlockType(str, Enum):
    """Block types understood by the pipeline."""

    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    PARAGRAPH = "paragraph"
    BULLETED_LIST_ITEM = "bulleted_list_item"
    NUMBERED_LIST_ITEM = "numbered_list_item"
    QUOTE = "quote"
    DIVIDER = "divider"
    CALLOUT = "callout"
    IMAGE = "image"
    VIDEO = "video"
    EMBED = "embed"

    # Read path only
    BOOKMARK = "bookmark"
    TO_DO = "to_do"
    UNSUPPORTED = "unsupported"


HEADING_TYPES = {
    1: BlockType.HEADING_1,
    2: BlockType.HEADING_2,
    3: BlockType.HEADING_3,
}

TEXT_TYPES = {
    BlockType.HEADING_1,
    BlockType.HEADING_2,
    BlockType.HEADING_3,
    BlockType.PARAGRAPH,
    BlockType.BULLETED_LIST_ITEM,
    BlockType.NUMBERED_LIST_ITEM,
    BlockType.QUOTE,
    BlockType.CALLOUT,
    BlockType.TO_DO,
}

MEDIA_TYPES = {BlockType.IMAGE, BlockType.VIDEO}
LINK_TYPES = {BlockType.EMBED, BlockType.BOOKMARK}


@dataclass(frozen=True)
class InlineRun:
    """A fragment of text with independent style annotations."""

    text: str
    bold: bool = False
    italic: bool = False
    code: bool = False
    underline: bool = False
    href: Optional[str] = None

    @classmethod
    def plain(cls, text: str) -> "InlineRun":
        return cls(text=text)

    @property
    def is_plain(self) -> bool:
        return not (self.bold or self.italic or self.code or self.underline or self.href)


@dataclass
class Block:
    """A single structural unit of a newsletter body."""

    type: BlockType
    runs: List[InlineRun] = field(default_factory=list)
    url: Optional[str] = None
    caption: List[InlineRun] = field(default_factory=list)
    checked: bool = False

    @classmethod
    def heading(cls, level: int, runs: List[InlineRun]) -> "Block":
        if level not in HEADING_TYPES:
            raise ValueError(f"Heading level must be 1, 2 or 3, got {level}")
        return cls(HEADING_TYPES[level], runs=list(runs))

    @classmethod
    def paragraph(cls, runs: List[InlineRun]) -> "Block":
        return cls(BlockType.PARAGRAPH, runs=list(runs))

    @classmethod
    def bullet(cls, runs: List[InlineRun]) -> "Block":
        return cls(BlockType.BULLETED_LIST_ITEM, runs=list(runs))

    @classmethod
    def numbered(cls, runs: List[InlineRun]) -> "Block":
        return cls(BlockType.NUMBERED_LIST_ITEM, runs=list(runs))

    @classmethod
    def quote(cls, runs: List[InlineRun]) -> "Block":
        return cls(BlockType.QUOTE, runs=list(runs))

    @classmethod
    def callout(cls, runs: List[InlineRun]) -> "Block":
        return cls(BlockType.CALLOUT, runs=list(runs))

    @classmethod
    def divider(cls) -> "Block":
        return cls(BlockType.DIVIDER)

    @classmethod
    def image(cls, url: str, caption: Optional[List[InlineRun]] = None) -> "Block":
        return cls(BlockType.IMAGE, url=url, caption=list(caption or []))

    @classmethod
    def video(cls, url: str) -> "Block":
        return cls(BlockType.VIDEO, url=url)

    @classmethod
    def embed(cls, url: str) -> "Block":
        return cls(BlockType.EMBED, url=url)

    @classmethod
    def bookmark(cls, url: str) -> "Block":
        return cls(BlockType.BOOKMARK, url=url)

    @property
    def heading_level(self) -> Optional[int]:
        for level, block_type in HEADING_TYPES.items():
            if self.type == block_type:
                return level
        return None

    @property
    def is_list_item(self) -> bool:
        return self.type in (BlockType.BULLETED_LIST_ITEM, BlockType.NUMBERED_LIST_ITEM)

    @classmethod
    def from_notion(cls, payload: Dict[str, Any]) -> "Block":
        """Build a block from the store's native JSON representation."""
        raw_type = payload.get("type", "")
        try:
            block_type = BlockType(raw_type)
        except ValueError:
            return cls(BlockType.UNSUPPORTED)

        content = payload.get(raw_type) or {}

        if block_type in TEXT_TYPES:
            return cls(
                block_type,
                runs=runs_from_notion(content.get("rich_text")),
                checked=bool(content.get("checked", False)),
            )

        if block_type in MEDIA_TYPES:
            url = (content.get("file") or {}).get("url") or (content.get("external") or {}).get("url")
            return cls(block_type, url=url, caption=runs_from_notion(content.get("caption")))

        if block_type in LINK_TYPES:
            return cls(block_type, url=content.get("url") or None)

        return cls(block_type)

    def to_notion(self) -> Dict[str, Any]:
        """Serialize into the append-children JSON the store accepts."""
        if self.type == BlockType.UNSUPPORTED:
            raise ValueError("Unsupported blocks cannot be written back to the store")

        key = self.type.value

        if self.type == BlockType.DIVIDER:
            content: Dict[str, Any] = {}
        elif self.type in MEDIA_TYPES:
            content = {"type": "external", "external": {"url": self.url}}
            if self.caption and self.type == BlockType.IMAGE:
                content["caption"] = runs_to_notion(self.caption)
        elif self.type in LINK_TYPES:
            content = {"url": self.url}
        else:
            content = {"rich_text": runs_to_notion(self.runs)}
            if self.type == BlockType.TO_DO:
                content["checked"] = self.checked

        return {"object": "block", "type": key, key: content}


def runs_from_notion(rich_text: Optional[List[Dict[str, Any]]]) -> List[InlineRun]:
    """Convert a Notion rich_text array into inline runs."""
    runs = []
    for item in rich_text or []:
        annotations = item.get("annotations") or {}
        href = item.get("href")
        if not href:
            link = (item.get("text") or {}).get("link") or {}
            href = link.get("url")
        text = item.get("plain_text")
        if text is None:
            text = (item.get("text") or {}).get("content", "")
        runs.append(InlineRun(
            text=text,
            bold=bool(annotations.get("bold")),
            italic=bool(annotations.get("italic")),
            code=bool(annotations.get("code")),
            underline=bool(annotations.get("underline")),
            href=href or None,
        ))
    return runs


def runs_to_notion(runs: List[InlineRun]) -> List[Dict[str, Any]]:
    """Convert inline runs into a Notion rich_text array.

    Runs longer than the store's per-object limit are split into consecutive
    chunks carrying the same annotations.
    """
    rich_text = []
    for run in runs:
        for start in range(0, max(len(run.text), 1), MAX_TEXT_LENGTH):
            chunk = run.text[start:start + MAX_TEXT_LENGTH]
            text: Dict[str, Any] = {"content": chunk}
            if run.href:
                text["link"] = {"url": run.href}
            item: Dict[str, Any] = {"type": "text", "text": text}
            if not run.is_plain:
                item["annotations"] = {
                    "bold": run.bold,
                    "italic": run.italic,
                    "code": run.code,
                    "underline": run.underline,
                }
            rich_text.append(item)
    return rich_text
