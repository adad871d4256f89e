"""Data models for Social RSS."""

from social_rss.models.item import (
    CATEGORY_ITEM,
    CATEGORY_REPLY,
    CATEGORY_REPOST,
    Author,
    FeedDocument,
    FeedItem,
    Item,
    Media,
    Metrics,
)
from social_rss.models.raw import RawItem, RawPhoto

__all__ = [
    "Author",
    "Media",
    "Metrics",
    "Item",
    "FeedItem",
    "FeedDocument",
    "RawItem",
    "RawPhoto",
    "CATEGORY_REPOST",
    "CATEGORY_REPLY",
    "CATEGORY_ITEM",
]
