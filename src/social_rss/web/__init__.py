"""HTTP front end for Social RSS."""

from social_rss.web.app import create_app

__all__ = ["create_app"]
