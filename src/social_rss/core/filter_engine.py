"""
Filter engine deciding which normalized items are published.

Three independent predicates run in a fixed, short-circuiting order:
reposts, replies, then minimum body length.
"""

from typing import Callable, Optional

from social_rss.config import FilterConfig
from social_rss.logger import get_logger
from social_rss.models import Item

logger = get_logger(__name__)

EXCLUDED_REPOST = "repost"
EXCLUDED_REPLY = "reply"
EXCLUDED_TOO_SHORT = "min_length"


class FilterResult:
    """Result of filtering an item."""

    def __init__(self, passed: bool, excluded_by: Optional[str] = None) -> None:
        """Initialize filter result.

        Args:
            passed: Whether the item passed all predicates
            excluded_by: Name of the predicate that rejected the item
        """
        self.passed = passed
        self.excluded_by = excluded_by

    def __repr__(self) -> str:
        return f"<FilterResult(passed={self.passed}, excluded_by={self.excluded_by})>"


def _rejects_repost(item: Item, config: FilterConfig) -> bool:
    return config.exclude_reposts and item.is_repost


def _rejects_reply(item: Item, config: FilterConfig) -> bool:
    return config.exclude_replies and item.is_reply


def _rejects_short(item: Item, config: FilterConfig) -> bool:
    return len(item.text) < config.min_length


_PREDICATES: list[tuple[str, Callable[[Item, FilterConfig], bool]]] = [
    (EXCLUDED_REPOST, _rejects_repost),
    (EXCLUDED_REPLY, _rejects_reply),
    (EXCLUDED_TOO_SHORT, _rejects_short),
]


def check_item(item: Item, config: FilterConfig) -> FilterResult:
    """Run the predicate chain against an item."""
    for name, rejects in _PREDICATES:
        if rejects(item, config):
            return FilterResult(passed=False, excluded_by=name)
    return FilterResult(passed=True)


def should_keep(item: Item, config: FilterConfig) -> bool:
    """Whether the item survives the filter chain."""
    return check_item(item, config).passed


class FilterEngine:
    """Applies the configured filter chain to items."""

    def __init__(self, config: FilterConfig) -> None:
        self.config = config

    def filter_item(self, item: Item) -> FilterResult:
        return check_item(item, self.config)

    def filter_items(self, items: list[Item]) -> tuple[list[Item], dict[str, int]]:
        """Filter multiple items.

        Args:
            items: Items to filter

        Returns:
            Tuple of (passed_items, exclusion_counts)
            exclusion_counts maps predicate name to number of items it rejected
        """
        passed = []
        excluded: dict[str, int] = {}

        for item in items:
            result = self.filter_item(item)
            if result.passed:
                passed.append(item)
            else:
                excluded[result.excluded_by] = excluded.get(result.excluded_by, 0) + 1

        if excluded:
            logger.debug(
                f"Filtered {len(items)} items: {len(passed)} passed, "
                f"{len(items) - len(passed)} excluded {excluded}"
            )

        return passed, excluded


def create_filter_engine(config: FilterConfig) -> FilterEngine:
    """Factory function to create a FilterEngine."""
    return FilterEngine(config)
