"""
Canonical item and feed document models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

# Category tags carried by rendered feed items
CATEGORY_REPOST = "repost"
CATEGORY_REPLY = "reply"
CATEGORY_ITEM = "item"


@dataclass(frozen=True)
class Author:
    """Item author."""

    username: str
    name: str
    verified: bool = False


@dataclass(frozen=True)
class Media:
    """Media attachment."""

    type: str
    url: str


@dataclass(frozen=True)
class Metrics:
    """Engagement counters."""

    likes: int = 0
    reposts: int = 0
    replies: int = 0


@dataclass
class Item:
    """Normalized post.

    ``id`` is always non-empty; the normalizer rejects anything else.
    """

    id: str
    text: str
    author: Author
    created_at: datetime
    url: str
    is_repost: bool = False
    is_reply: bool = False
    reply_to_id: Optional[str] = None
    reposted: Any = None
    quoted: Any = None
    media: list[Media] = field(default_factory=list)
    metrics: Metrics = field(default_factory=Metrics)
    thread: Optional[list["Item"]] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Item id must be non-empty")

    @property
    def category(self) -> str:
        """Exactly one of repost, reply, item (repost wins over reply)."""
        if self.is_repost:
            return CATEGORY_REPOST
        if self.is_reply:
            return CATEGORY_REPLY
        return CATEGORY_ITEM


@dataclass
class FeedItem:
    """Render-ready feed entry."""

    title: str
    description: str
    link: str
    pub_date: str
    guid: str
    author: str
    category: str


@dataclass
class FeedDocument:
    """Rendered feed channel with its items, in caller order."""

    title: str
    description: str
    link: str
    last_build_date: str
    items: list[FeedItem] = field(default_factory=list)
