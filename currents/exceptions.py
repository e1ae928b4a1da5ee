"""
Ingestion error types and HTTP exception utilities.

The ingestion errors are raised by the feed parser and content extractor
and contained by the sync orchestrator at per-feed / per-article
granularity. The ``require_*`` helpers reduce boilerplate for 404s in
route handlers.
"""

from typing import TypeVar

from fastapi import HTTPException

T = TypeVar("T")


class IngestionError(Exception):
    """Base class for errors raised while ingesting external content."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.message = message


class FeedFetchError(IngestionError):
    """Transport failure fetching a feed (DNS, connection, timeout, HTTP status)."""
    pass


class FeedParseError(IngestionError):
    """Feed document could not be interpreted as RSS/Atom."""
    pass


class ExtractionError(IngestionError):
    """Article page could not be fetched or parsed."""
    pass


def require_resource(resource: T | None, detail: str = "Resource not found") -> T:
    """
    Raise 404 if resource is None, otherwise return the resource.

    Usage:
        article = require_resource(db.get_article(id), "Article not found")
    """
    if resource is None:
        raise HTTPException(status_code=404, detail=detail)
    return resource


def require_article(article: T | None) -> T:
    """Raise 404 if article is None."""
    return require_resource(article, "Article not found")


def require_feed(feed: T | None) -> T:
    """Raise 404 if feed is None."""
    return require_resource(feed, "Feed not found")
