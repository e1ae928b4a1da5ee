"""
Feed Parser - Fetch and parse RSS/Atom feeds into normalized items.

Handles:
- RSS 2.0, RSS 1.0 and Atom 1.0 formats (via feedparser)
- Schema variants for content, author, dates and images
- Per-domain politeness delay
- Mapping transport and parse failures onto ingestion errors
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urlparse

import aiohttp
import feedparser

from .exceptions import FeedFetchError, FeedParseError
from .url_validator import SSRFError, validate_url

logger = logging.getLogger(__name__)

ICON_SERVICE_URL = "https://icon.horse/icon/{domain}"


@dataclass
class FeedItem:
    """A single entry from a feed. Any field may be missing."""
    url: str | None
    title: str | None
    author: str | None
    published: datetime | None
    content: str | None
    image_url: str | None = None


@dataclass
class ParsedFeed:
    """A fetched and parsed feed."""
    url: str
    title: str | None
    link: str | None
    items: list[FeedItem]
    fetched_at: datetime


def icon_url_for(feed_url: str, site_link: str | None = None) -> str | None:
    """Favicon URL for a feed, based on its site link or its own host."""
    domain = urlparse(site_link).hostname if site_link else None
    domain = domain or urlparse(feed_url).hostname
    if not domain:
        return None
    return ICON_SERVICE_URL.format(domain=domain)


def _entry_link(entry) -> str | None:
    link = entry.get("link")
    if link:
        return link
    for item in entry.get("links", []):
        if item.get("rel") == "alternate" or item.get("type") == "text/html":
            if item.get("href"):
                return item["href"]
    return None


def _entry_content(entry) -> str | None:
    """Full/encoded content first, then the summary/description snippet."""
    for block in entry.get("content") or []:
        value = block.get("value")
        if value and value.strip():
            return value
    summary = entry.get("summary") or entry.get("description")
    return summary or None


def _entry_author(entry) -> str | None:
    # feedparser maps dc:creator onto author
    author = entry.get("author")
    if not author:
        author = (entry.get("author_detail") or {}).get("name")
    return author or None


def _entry_published(entry) -> datetime | None:
    """
    Publication time in UTC.

    feedparser normalizes both ISO-8601 (Atom) and RFC 822 (RSS pubDate)
    dates into the *_parsed fields.
    """
    for key in ("published_parsed", "updated_parsed", "created_parsed"):
        struct = entry.get(key)
        if not struct:
            continue
        try:
            return datetime(*struct[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            continue
    return None


def _is_image_media(media: dict) -> bool:
    media_type = media.get("type") or ""
    medium = media.get("medium")
    if medium and medium != "image":
        return False
    return not media_type or media_type.startswith("image/")


def _entry_image(entry) -> str | None:
    """Enclosure, then <image>, then media:content, then media:thumbnail."""
    for enclosure in entry.get("enclosures", []):
        href = enclosure.get("href") or enclosure.get("url")
        if href and _is_image_media(enclosure):
            return href

    image = entry.get("image")
    if isinstance(image, dict):
        href = image.get("href") or image.get("url")
        if href:
            return href
    elif isinstance(image, str) and image:
        return image

    for media in entry.get("media_content", []):
        if media.get("url") and _is_image_media(media):
            return media["url"]

    for thumbnail in entry.get("media_thumbnail", []):
        if thumbnail.get("url"):
            return thumbnail["url"]

    return None


class FeedParser:
    """Fetches feeds over HTTP and parses them with feedparser."""

    def __init__(
        self,
        timeout: int = 30,
        max_items: int = 50,
        user_agent: str | None = None,
        min_interval: float = 1.0,
        validate_urls: bool = True,
    ):
        self.timeout = timeout
        self.max_items = max_items
        self.user_agent = user_agent or "Currents Reader/1.0 (+feed fetcher)"
        self.validate_urls = validate_urls
        self._domain_last_fetch: dict[str, float] = {}
        self._min_interval = min_interval  # Minimum seconds between requests to same domain

    async def fetch(self, url: str) -> ParsedFeed:
        """
        Fetch and parse a feed URL.

        Raises:
            FeedFetchError: On blocked URLs, transport failures, timeouts
                and non-2xx responses
            FeedParseError: If the body is not a usable feed
        """
        if self.validate_urls:
            try:
                validate_url(url)
            except SSRFError as e:
                raise FeedFetchError(url, str(e)) from e

        await self._rate_limit(urlparse(url).netloc)

        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, text/xml;q=0.8, */*;q=0.5",
        }
        try:
            async with aiohttp.ClientSession(headers=headers) as session:
                async with session.get(
                    url,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                    allow_redirects=True,
                ) as resp:
                    resp.raise_for_status()
                    body = await resp.read()
        except asyncio.TimeoutError as e:
            raise FeedFetchError(url, f"Timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise FeedFetchError(url, f"Failed to fetch feed: {e}") from e

        return self.parse(url, body)

    def parse(self, url: str, content: str | bytes) -> ParsedFeed:
        """Parse an already-fetched feed document."""
        parsed = feedparser.parse(content)

        if not parsed.entries and (parsed.bozo or not parsed.get("version")):
            reason = parsed.get("bozo_exception") or "not a recognized feed format"
            raise FeedParseError(url, f"Failed to parse feed: {reason}")

        items = [
            FeedItem(
                url=_entry_link(entry),
                title=entry.get("title"),
                author=_entry_author(entry),
                published=_entry_published(entry),
                content=_entry_content(entry),
                image_url=_entry_image(entry),
            )
            for entry in parsed.entries[:self.max_items]
        ]

        logger.debug(f"Parsed {len(items)} items from {url}")

        return ParsedFeed(
            url=url,
            title=parsed.feed.get("title") or None,
            link=parsed.feed.get("link") or None,
            items=items,
            fetched_at=datetime.now(timezone.utc),
        )

    async def _rate_limit(self, domain: str):
        """Ensure minimum interval between requests to same domain."""
        now = time.monotonic()
        if domain in self._domain_last_fetch:
            elapsed = now - self._domain_last_fetch[domain]
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
        self._domain_last_fetch[domain] = time.monotonic()


def parse_feed_sync(content: str | bytes, url: str = "") -> ParsedFeed:
    """
    Synchronous feed parsing (for use when content is already fetched).

    Useful for testing or when you already have the feed content.
    """
    return FeedParser().parse(url, content)
