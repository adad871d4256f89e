"""
RSS 2.0 feed builder.

Turns an ordered sequence of items into a FeedDocument and renders it as
XML. Item descriptions are wrapped in CDATA sections; every other text node
is entity-escaped.
"""

import re
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable, Iterable, Optional
from xml.sax.saxutils import escape, quoteattr

from social_rss.config import FeedConfig
from social_rss.models import FeedDocument, FeedItem, Item

TITLE_MAX_CHARS = 100
TITLE_ELLIPSIS = "..."
ATOM_NS = "http://www.w3.org/2005/Atom"

# XML 1.0 forbids these control characters even inside CDATA; lone
# surrogates (emoji cut in half upstream) cannot be encoded as UTF-8 at all
_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F\ud800-\udfff\ufffe\uffff]")


def _sanitize(text: str) -> str:
    return _CONTROL_RE.sub("", text or "")


def _cdata(text: str) -> str:
    # A literal "]]>" would close the section early; split it across two sections
    text = _sanitize(text).replace("]]>", "]]]]><![CDATA[>")
    return f"<![CDATA[{text}]]>"


def _text(text: str) -> str:
    return escape(_sanitize(text))


def rfc822(dt: datetime) -> str:
    """Format an instant as an RFC-822 date in GMT."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def item_title(item: Item) -> str:
    """``@handle: body`` with the body truncated to 100 characters."""
    body = item.text[:TITLE_MAX_CHARS]
    if len(item.text) > TITLE_MAX_CHARS:
        body += TITLE_ELLIPSIS
    return f"@{item.author.username}: {body}"


def item_description(item: Item) -> str:
    """Body text followed by media, engagement and thread annotations."""
    description = item.text

    if item.media:
        description += f"\n\nMedia: {len(item.media)} attachment(s)"

    if item.metrics:
        m = item.metrics
        description += f"\n\n❤️ {m.likes} | 🔄 {m.reposts} | 💬 {m.replies}"

    if item.thread:
        replies = "\n".join(f"@{t.author.username}: {t.text}" for t in item.thread)
        description += f"\n\nThread:\n{replies}"

    return description


def to_feed_item(item: Item) -> FeedItem:
    """Render-ready view of an item."""
    return FeedItem(
        title=item_title(item),
        description=item_description(item),
        link=item.url,
        pub_date=rfc822(item.created_at),
        guid=item.id,
        author=f"{item.author.name} (@{item.author.username})",
        category=item.category,
    )


class FeedBuilder:
    """Builds and renders the published feed."""

    def __init__(
        self,
        config: FeedConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize feed builder.

        Args:
            config: Feed section of the configuration
            clock: Source of the last-build instant (UTC now by default)
        """
        self.config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def build(self, items: Iterable[Item]) -> FeedDocument:
        """Build a document from items, keeping their order."""
        return FeedDocument(
            title=self.config.title,
            description=self.config.description,
            link=self.config.link,
            last_build_date=rfc822(self._clock()),
            items=[to_feed_item(item) for item in items],
        )

    def render(self, document: FeedDocument) -> str:
        """Serialize a document to RSS 2.0 XML."""
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<rss version="2.0" xmlns:atom="{ATOM_NS}">',
            "  <channel>",
            f"    <title>{_text(document.title)}</title>",
            f"    <description>{_text(document.description)}</description>",
            f"    <link>{_text(document.link)}</link>",
            f"    <lastBuildDate>{_text(document.last_build_date)}</lastBuildDate>",
            f"    <generator>{_text(self.config.generator)}</generator>",
            f"    <atom:link href={quoteattr(_sanitize(document.link))} rel=\"self\" type=\"application/rss+xml\"/>",
        ]

        for feed_item in document.items:
            lines.extend([
                "    <item>",
                f"      <title>{_text(feed_item.title)}</title>",
                f"      <description>{_cdata(feed_item.description)}</description>",
                f"      <link>{_text(feed_item.link)}</link>",
                f"      <pubDate>{_text(feed_item.pub_date)}</pubDate>",
                f"      <guid isPermaLink=\"false\">{_text(feed_item.guid)}</guid>",
                f"      <author>{_text(feed_item.author)}</author>",
                f"      <category>{_text(feed_item.category)}</category>",
                "    </item>",
            ])

        lines.extend(["  </channel>", "</rss>", ""])
        return "\n".join(lines)

    def build_xml(self, items: Iterable[Item]) -> str:
        """Build and render in one step."""
        return self.render(self.build(items))


def create_feed_builder(config: FeedConfig) -> FeedBuilder:
    """Factory function to create a FeedBuilder."""
    return FeedBuilder(config)
