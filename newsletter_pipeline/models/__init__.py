"""Data models for the newsletter send pipeline."""

from .blocks import Block, BlockType, InlineRun
from .newsletter import Newsletter, Recipient, SendMode, SendResult

__all__ = [
    "Block",
    "BlockType",
    "InlineRun",
    "Newsletter",
    "Recipient",
    "SendMode",
    "SendResult",
]
