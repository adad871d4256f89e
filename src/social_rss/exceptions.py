"""
Error taxonomy for the ingestion and publication pipeline.

Every error carries a ``user_message`` suitable for showing to whoever
triggered the operation; ``str(error)`` keeps the internal detail for logs.
"""

from pathlib import Path
from typing import Any, Optional


class SocialRSSError(Exception):
    """Base class for pipeline errors."""

    user_message = "The RSS service encountered an error."

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class AuthRequired(SocialRSSError):
    """The upstream source was never authenticated; no pass may run."""

    user_message = "Source authentication required. Please check credentials and try again."


class PassInProgress(SocialRSSError):
    """A pass is already running; passes never overlap."""

    user_message = "An update is already in progress. Try again shortly."


class FetchFailure(SocialRSSError):
    """A single list (or item detail) fetch failed. Recovered by skipping it."""

    user_message = "Fetching from the upstream source failed."

    def __init__(self, message: str, list_id: Optional[str] = None):
        super().__init__(message)
        self.list_id = list_id


class InvalidItem(SocialRSSError):
    """A raw item could not be normalized. Recovered by dropping the item."""

    user_message = "An item could not be processed."

    def __init__(self, message: str, raw: Any = None):
        super().__init__(message)
        self.raw = raw


class PersistFailure(SocialRSSError):
    """Writing the feed document or the identifier snapshot failed."""

    user_message = "Saving the feed failed."

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class FeedNotFound(SocialRSSError):
    """No feed document has been generated yet."""

    user_message = "Feed may not be generated yet. Try triggering an update first."
