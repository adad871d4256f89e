"""
Normalizer turning raw provider payloads into canonical items.

Handles identifier validation, field defaults, timestamp resolution and
recursive thread normalization. Performs no I/O.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

import feedparser.datetimes

from social_rss.exceptions import InvalidItem
from social_rss.logger import get_logger
from social_rss.models import Author, Item, Media, Metrics, RawItem

logger = get_logger(__name__)

UNKNOWN_USERNAME = "unknown"
UNKNOWN_NAME = "Unknown User"
ITEM_URL_TEMPLATE = "https://twitter.com/{username}/status/{id}"

# Epoch values above this are taken to be milliseconds
_MILLISECONDS_THRESHOLD = 10**11


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def item_url(username: Optional[str], item_id: str) -> str:
    """Canonical URL for an item."""
    return ITEM_URL_TEMPLATE.format(username=username or UNKNOWN_USERNAME, id=item_id)


def parse_timestamp(value: Any, now: Optional[datetime] = None) -> datetime:
    """Resolve a raw timestamp to an aware UTC datetime.

    Args:
        value: Epoch seconds/milliseconds (number or numeric string),
            ISO-8601 or RFC-822 string, datetime, or None
        now: Fallback instant for missing or unparsable values

    Returns:
        Aware datetime in UTC
    """
    fallback = now or _utcnow()

    if value is None or value == "" or isinstance(value, bool):
        return fallback

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, str):
        stripped = value.strip()
        try:
            value = float(stripped)
        except ValueError:
            return _parse_date_string(stripped, fallback)

    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > _MILLISECONDS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning(f"Timestamp out of range: {value!r}")
            return fallback

    logger.warning(f"Unsupported timestamp type: {type(value).__name__}")
    return fallback


def _parse_date_string(date_str: str, fallback: datetime) -> datetime:
    try:
        parsed = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except ValueError:
        pass

    # feedparser understands RFC-822 and the other common feed date formats
    struct = feedparser.datetimes._parse_date(date_str)
    if struct:
        return datetime(*struct[:6], tzinfo=timezone.utc)

    logger.warning(f"Failed to parse timestamp: {date_str}")
    return fallback


def normalize(raw: Any, now: Optional[datetime] = None) -> Item:
    """Convert a raw item into a canonical Item.

    Args:
        raw: RawItem or decoded JSON mapping
        now: Ingestion instant used for missing timestamps

    Returns:
        Normalized Item

    Raises:
        InvalidItem: If the item has no identifier
    """
    raw_item = RawItem.from_payload(raw)
    item_id = (raw_item.id or "").strip()
    if not item_id:
        raise InvalidItem("Item missing required id field", raw=raw)

    now = now or _utcnow()
    username = raw_item.username or UNKNOWN_USERNAME

    thread = None
    if raw_item.thread is not None:
        thread = []
        for node in raw_item.thread:
            try:
                thread.append(normalize(node, now=now))
            except InvalidItem as e:
                logger.warning(f"Skipping thread entry of item {item_id}: {e}")

    return Item(
        id=item_id,
        text=raw_item.text or "",
        author=Author(
            username=username,
            name=raw_item.name or UNKNOWN_NAME,
            verified=bool(raw_item.is_verified),
        ),
        created_at=parse_timestamp(raw_item.timestamp, now=now),
        url=item_url(username, item_id),
        is_repost=bool(raw_item.is_retweet),
        is_reply=bool(raw_item.is_reply),
        reply_to_id=raw_item.in_reply_to_status_id,
        reposted=raw_item.retweeted_status,
        quoted=raw_item.quoted_status,
        media=[Media(type="image", url=photo.url) for photo in raw_item.photos if photo.url],
        metrics=Metrics(
            likes=raw_item.likes or 0,
            reposts=raw_item.retweets or 0,
            replies=raw_item.replies or 0,
        ),
        thread=thread,
    )


def normalize_many(
    raws: Iterable[Any],
    now: Optional[datetime] = None,
    on_invalid: Optional[Callable[[InvalidItem], None]] = None,
) -> list[Item]:
    """Normalize a batch, dropping invalid items.

    Args:
        raws: Raw payloads
        now: Ingestion instant shared by the batch
        on_invalid: Optional callback receiving each dropped item's error

    Returns:
        Normalized items in input order
    """
    now = now or _utcnow()
    items = []

    for raw in raws:
        try:
            items.append(normalize(raw, now=now))
        except InvalidItem as e:
            logger.error(f"Dropping invalid item: {e}")
            if on_invalid:
                on_invalid(e)

    return items
