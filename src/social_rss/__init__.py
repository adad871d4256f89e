"""
Social RSS - Monitored list aggregation into a deduplicated RSS feed.

This package fetches posts from configured social-media lists, normalizes,
filters and deduplicates them, and publishes an RSS 2.0 document that is
refreshed on a timer and served over HTTP.
"""

__version__ = "0.1.0"
