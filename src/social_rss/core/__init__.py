"""Core ingestion and publication pipeline for Social RSS.

Front ends should use ``FeedService`` from ``social_rss.core.services``;
the remaining names are exported for type hints, configuration and tests.
"""

from social_rss.core.aggregator import Aggregator, AggregatorState, ListResult, PassResult
from social_rss.core.deduplicator import DedupStore
from social_rss.core.feed_builder import FeedBuilder
from social_rss.core.feed_store import FeedFileInfo, FeedStore
from social_rss.core.fetcher import HttpListSource, ListSource
from social_rss.core.filter_engine import FilterEngine, FilterResult, should_keep
from social_rss.core.normalizer import normalize, normalize_many
from social_rss.core.services import FeedService, StatusSnapshot, create_feed_service

__all__ = [
    "FeedService",
    "create_feed_service",
    "StatusSnapshot",
    "Aggregator",
    "AggregatorState",
    "ListResult",
    "PassResult",
    "DedupStore",
    "FeedBuilder",
    "FeedStore",
    "FeedFileInfo",
    "ListSource",
    "HttpListSource",
    "FilterEngine",
    "FilterResult",
    "should_keep",
    "normalize",
    "normalize_many",
]
