"""Newsletter, recipient and send-result models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from newsletter_pipeline.models.blocks import Block, InlineRun


class SendMode(str, Enum):
    """Who a dispatch is addressed to."""

    TEST = "test"
    FULL = "full"


@dataclass
class Newsletter:
    """A newsletter document as read from the workspace store."""

    id: str
    title: str = "Newsletter"
    issue_date: str = ""
    status: str = ""
    url: str = ""
    audience: List[str] = field(default_factory=list)
    highlights: List[InlineRun] = field(default_factory=list)
    primary_customer: str = ""
    collateral: str = ""
    blocks: List[Block] = field(default_factory=list)


@dataclass(frozen=True)
class Recipient:
    """A resolved email recipient."""

    email: str
    first_name: Optional[str] = None


@dataclass
class SendResult:
    """Tally of a single dispatch."""

    sent: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        return self.sent + self.failed

    @property
    def all_failed(self) -> bool:
        return self.sent == 0 and self.failed > 0
