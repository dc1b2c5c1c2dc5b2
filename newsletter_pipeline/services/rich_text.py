"""Inline rich-text rendering and parsing.

Runs are rendered to semantic inline HTML for email, and inline markdown (as
written by the drafting model) is parsed back into runs. The parser is
deliberately permissive: anything it cannot match stays literal text.
"""

import html
import re
from dataclasses import replace
from typing import Iterable, List, Optional

from newsletter_pipeline.models.blocks import InlineRun

INLINE_PATTERN = re.compile(r"\*\*(.+?)\*\*|\*(.+?)\*|`(.+?)`|\[(.+?)\]\((.+?)\)")

HIGHLIGHT_STRONG_STYLE = "color:#FE8383;font-weight:700;"


def plain_text(runs: Optional[Iterable[InlineRun]]) -> str:
    """Concatenate run text without any markup."""
    if not runs:
        return ""
    return "".join(run.text for run in runs)


def _render_run(run: InlineRun) -> str:
    # Wrapped innermost first so the link ends up outermost.
    text = html.escape(run.text, quote=False)
    if run.code:
        text = f"<code>{text}</code>"
    if run.italic:
        text = f"<em>{text}</em>"
    if run.bold:
        text = f"<strong>{text}</strong>"
    if run.underline:
        text = f"<u>{text}</u>"
    if run.href:
        text = f'<a href="{html.escape(run.href, quote=True)}">{text}</a>'
    return text


def render_inline(runs: Optional[Iterable[InlineRun]]) -> str:
    """Render runs as inline HTML (no block-level tags)."""
    if not runs:
        return ""
    return "".join(_render_run(run) for run in runs)


def parse_inline(fragment: Optional[str]) -> List[InlineRun]:
    """Parse inline markdown into runs.

    Recognises ``**bold**``, ``*italic*``, ```code``` and ``[text](url)``,
    scanning left to right and taking the first match at each position.
    Link text is parsed the same way, and every run in it carries the link.
    """
    if not fragment:
        return []

    runs: List[InlineRun] = []
    last_index = 0

    for match in INLINE_PATTERN.finditer(fragment):
        if match.start() > last_index:
            runs.append(InlineRun.plain(fragment[last_index:match.start()]))

        bold, italic, code, link_text, link_url = match.groups()
        if bold is not None:
            runs.append(InlineRun(text=bold, bold=True))
        elif italic is not None and not match.group(0).startswith("**"):
            runs.append(InlineRun(text=italic, italic=True))
        elif code is not None:
            runs.append(InlineRun(text=code, code=True))
        elif link_text is not None:
            runs.extend(replace(run, href=link_url) for run in parse_inline(link_text))
        else:
            # An unbalanced bold delimiter swallowed by the italic branch.
            runs.append(InlineRun.plain(match.group(0)))

        last_index = match.end()

    if last_index < len(fragment):
        runs.append(InlineRun.plain(fragment[last_index:]))

    return runs


def render_markdown_inline(runs: Optional[Iterable[InlineRun]]) -> str:
    """Render runs back into inline markdown.

    Underline has no markdown form and is dropped.
    """
    if not runs:
        return ""

    parts = []
    for run in runs:
        text = run.text
        if run.bold:
            text = f"**{text}**"
        if run.italic:
            text = f"*{text}*"
        if run.code:
            text = f"`{text}`"
        if run.href:
            text = f"[{text}]({run.href})"
        parts.append(text)
    return "".join(parts)


def format_highlights(highlights_html: str) -> str:
    """Prepare rendered highlights for the email's highlights box."""
    return re.sub(
        r"<strong>([^<]+)</strong>",
        rf'<strong style="{HIGHLIGHT_STRONG_STYLE}">\1</strong>',
        highlights_html.replace("\n", "<br>"),
    )
