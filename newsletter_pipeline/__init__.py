"""Newsletter Send Pipeline

Turns newsletter drafts kept in a Notion workspace into email-ready HTML and
sends them through a transactional email API when their status changes.
"""

__version__ = "0.1.0"

from newsletter_pipeline.models.blocks import Block, BlockType, InlineRun
from newsletter_pipeline.models.newsletter import Newsletter, Recipient, SendMode, SendResult

__all__ = [
    "Block",
    "BlockType",
    "InlineRun",
    "Newsletter",
    "Recipient",
    "SendMode",
    "SendResult",
]
