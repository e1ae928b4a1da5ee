"""
Article Normalizer - map parsed feed items onto article records.

Cleans and truncates fields, canonicalizes article URLs (the dedup key)
and drops items that cannot be addressed.
"""

import html
import logging
import re
from datetime import datetime, timezone
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from .database.models import ArticleRecord
from .feeds import FeedItem

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255
DEFAULT_TITLE = "Untitled"
MAX_AUTHOR_LENGTH = 255


def canonicalize_url(url: str | None, base_url: str | None = None) -> str | None:
    """
    Canonical form of an article URL.

    Relative links are resolved against the feed URL, scheme and host are
    lowercased, and the fragment is dropped. Returns None for anything that
    is not an absolute http(s) URL.
    """
    if not url:
        return None
    url = url.strip()
    if not url:
        return None
    if base_url:
        url = urljoin(base_url, url)

    try:
        parts = urlsplit(url)
    except ValueError:
        return None

    scheme = parts.scheme.lower()
    if scheme not in ("http", "https") or not parts.netloc:
        return None

    path = parts.path or "/"
    return urlunsplit((scheme, parts.netloc.lower(), path, parts.query, ""))


def clean_title(title: str | None) -> str:
    """Plain-text title, at most 255 characters, never empty."""
    if not title:
        return DEFAULT_TITLE
    text = title
    if "<" in text:
        text = BeautifulSoup(text, "html.parser").get_text(" ")
    text = re.sub(r"\s+", " ", html.unescape(text)).strip()
    if not text:
        return DEFAULT_TITLE
    return text[:MAX_TITLE_LENGTH]


def clean_author(author: str | None) -> str | None:
    if not author:
        return None
    author = re.sub(r"\s+", " ", author).strip()
    return author[:MAX_AUTHOR_LENGTH] or None


def normalize_item(
    feed_id: int,
    item: FeedItem,
    base_url: str | None = None,
    now: datetime | None = None,
) -> ArticleRecord | None:
    """Build an article record from one feed item, or None if it has no usable URL."""
    url = canonicalize_url(item.url, base_url)
    if url is None:
        return None

    image_url = canonicalize_url(item.image_url, url) if item.image_url else None

    return ArticleRecord(
        feed_id=feed_id,
        title=clean_title(item.title),
        url=url,
        image_url=image_url,
        content=item.content or "",
        author=clean_author(item.author),
        published_at=item.published or now or datetime.now(timezone.utc),
    )


def normalize_items(
    feed_id: int,
    items: list[FeedItem],
    base_url: str | None = None,
    now: datetime | None = None,
) -> list[ArticleRecord]:
    """
    Normalize a feed's items into upsert records.

    Items without a resolvable URL are dropped. When the same URL appears
    more than once in the batch, the first occurrence wins. Source order
    is preserved. Items without a date get the same ingestion timestamp.
    """
    now = now or datetime.now(timezone.utc)
    records: list[ArticleRecord] = []
    seen: set[str] = set()
    dropped = 0

    for item in items:
        record = normalize_item(feed_id, item, base_url, now)
        if record is None:
            dropped += 1
            continue
        if record.url in seen:
            continue
        seen.add(record.url)
        records.append(record)

    if dropped:
        logger.debug(f"Dropped {dropped} items without a usable URL (feed {feed_id})")

    return records
