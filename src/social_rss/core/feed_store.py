"""
Single-slot store for the rendered feed document.

Each save wholly replaces the previous document; no history is kept.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import feedparser

from social_rss.core.files import write_atomic
from social_rss.exceptions import FeedNotFound, PersistFailure
from social_rss.logger import get_logger

logger = get_logger(__name__)


@dataclass
class FeedFileInfo:
    """Filesystem facts about the stored document."""

    exists: bool
    last_modified: Optional[datetime] = None
    size: Optional[int] = None


class FeedStore:
    """Persists the latest feed document at a fixed location."""

    def __init__(self, path: Union[str, Path]):
        """Initialize feed store.

        Args:
            path: Location of the feed document
        """
        self.path = Path(path)

    def save(self, xml: str) -> Path:
        """Replace the stored document.

        Args:
            xml: Rendered document

        Returns:
            Location of the stored document

        Raises:
            PersistFailure: If the document could not be written
        """
        try:
            write_atomic(self.path, xml)
        except (OSError, UnicodeError) as e:
            raise PersistFailure(f"Failed to write feed to {self.path}: {e}", path=self.path) from e

        logger.info(f"Feed written to {self.path} ({len(xml)} chars)")
        return self.path

    def load_raw(self) -> bytes:
        """Latest stored document.

        Raises:
            FeedNotFound: If no document has been generated yet
        """
        try:
            return self.path.read_bytes()
        except FileNotFoundError as e:
            raise FeedNotFound(f"No feed document at {self.path}") from e

    def exists(self) -> bool:
        return self.path.is_file()

    def stat(self) -> FeedFileInfo:
        try:
            st = self.path.stat()
        except OSError:
            return FeedFileInfo(exists=False)

        return FeedFileInfo(
            exists=True,
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            size=st.st_size,
        )

    def parse(self) -> feedparser.FeedParserDict:
        """Parse the stored document the way a feed reader would.

        Raises:
            FeedNotFound: If no document has been generated yet
        """
        return feedparser.parse(self.load_raw())


def create_feed_store(path: Union[str, Path]) -> FeedStore:
    """Factory function to create a FeedStore."""
    return FeedStore(path)
