import pytest

from newsletter_pipeline.models.blocks import (
    MAX_TEXT_LENGTH,
    Block,
    BlockType,
    InlineRun,
    runs_from_notion,
    runs_to_notion,
)


def rich_text(content: str, href=None, **annotations):
    return {
        "type": "text",
        "text": {"content": content, "link": {"url": href} if href else None},
        "plain_text": content,
        "href": href,
        "annotations": {
            "bold": False,
            "italic": False,
            "strikethrough": False,
            "underline": False,
            "code": False,
            "color": "default",
            **annotations,
        },
    }


def test_runs_from_notion_reads_annotations_and_links() -> None:
    runs = runs_from_notion([
        rich_text("Acme", bold=True),
        rich_text(" renewed "),
        rich_text("details", href="https://example.com", underline=True),
    ])

    assert runs == [
        InlineRun(text="Acme", bold=True),
        InlineRun.plain(" renewed "),
        InlineRun(text="details", underline=True, href="https://example.com"),
    ]


def test_runs_from_notion_falls_back_to_text_link() -> None:
    item = {"type": "text", "text": {"content": "docs", "link": {"url": "https://docs.example.com"}}}

    assert runs_from_notion([item]) == [InlineRun(text="docs", href="https://docs.example.com")]


def test_runs_to_notion_splits_long_text() -> None:
    long_run = InlineRun(text="a" * (MAX_TEXT_LENGTH + 10), bold=True)

    items = runs_to_notion([long_run])

    assert [len(item["text"]["content"]) for item in items] == [MAX_TEXT_LENGTH, 10]
    assert all(item["annotations"]["bold"] for item in items)


def test_runs_to_notion_plain_run_has_no_annotations() -> None:
    assert runs_to_notion([InlineRun.plain("hi")]) == [{"type": "text", "text": {"content": "hi"}}]


def test_from_notion_text_block() -> None:
    block = Block.from_notion({
        "object": "block",
        "id": "b1",
        "type": "heading_2",
        "heading_2": {"rich_text": [rich_text("Feature A")], "is_toggleable": False},
    })

    assert block == Block.heading(2, [InlineRun.plain("Feature A")])
    assert block.heading_level == 2


def test_from_notion_uploaded_image_with_caption() -> None:
    block = Block.from_notion({
        "type": "image",
        "image": {
            "type": "file",
            "file": {"url": "https://s3.example.com/img.png?X-Amz-Expires=3600", "expiry_time": "..."},
            "caption": [rich_text("Dashboard")],
        },
    })

    assert block.type == BlockType.IMAGE
    assert block.url == "https://s3.example.com/img.png?X-Amz-Expires=3600"
    assert block.caption == [InlineRun.plain("Dashboard")]


def test_from_notion_bookmark_and_unknown_types() -> None:
    bookmark = Block.from_notion({"type": "bookmark", "bookmark": {"url": "https://loom.com/share/1"}})
    table = Block.from_notion({"type": "table", "table": {"table_width": 2}})

    assert bookmark == Block.bookmark("https://loom.com/share/1")
    assert table.type == BlockType.UNSUPPORTED


def test_to_notion_shapes() -> None:
    assert Block.divider().to_notion() == {"object": "block", "type": "divider", "divider": {}}
    assert Block.image("https://cdn.example.com/a.png").to_notion() == {
        "object": "block",
        "type": "image",
        "image": {"type": "external", "external": {"url": "https://cdn.example.com/a.png"}},
    }
    assert Block.bullet([InlineRun.plain("x")]).to_notion() == {
        "object": "block",
        "type": "bulleted_list_item",
        "bulleted_list_item": {"rich_text": [{"type": "text", "text": {"content": "x"}}]},
    }


def test_to_notion_rejects_unsupported() -> None:
    with pytest.raises(ValueError):
        Block(BlockType.UNSUPPORTED).to_notion()


def test_heading_level_out_of_range() -> None:
    with pytest.raises(ValueError):
        Block.heading(4, [])
