"""
Content Extractor - enrich stored articles from their own web pages.

Handles:
- HTTP fetching with browser-like headers and a short timeout
- Main-content extraction using trafilatura (reader-mode)
- Fallback to BeautifulSoup heuristics for edge cases
- Representative image discovery from page metadata
- Bounded concurrency: small batches run concurrently, batches run in turn
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urljoin

import aiohttp
import trafilatura
from bs4 import BeautifulSoup

from .database.models import ArticleRef
from .exceptions import ExtractionError
from .url_validator import SSRFError, validate_url

if TYPE_CHECKING:
    from .database import Database

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# Checked in order; the first non-empty value wins
IMAGE_META_KEYS = [
    "og:image",
    "og:image:url",
    "og:image:secure_url",
    "twitter:image",
    "twitter:image:src",
]


@dataclass
class ExtractionResult:
    """Outcome of an extraction run."""
    requested: int
    processed_count: int


@dataclass
class PageExtraction:
    """What could be pulled out of one article page."""
    content: str | None
    image_url: str | None


def text_length(fragment: str) -> int:
    """Length of the visible text in an HTML fragment."""
    return len(BeautifulSoup(fragment, "html.parser").get_text(" ", strip=True))


def find_image_url(soup: BeautifulSoup, base_url: str) -> str | None:
    """
    Representative image from page metadata.

    Open Graph variants, then Twitter variants, then <link rel="image_src">,
    then <meta name="thumbnail">. Relative values are resolved against the
    page URL.
    """
    candidates: list[str | None] = []
    for key in IMAGE_META_KEYS:
        meta = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        candidates.append(meta.get("content") if meta else None)

    link = soup.find("link", rel="image_src")
    candidates.append(link.get("href") if link else None)

    thumb = soup.find("meta", attrs={"name": "thumbnail"})
    candidates.append(thumb.get("content") if thumb else None)

    for candidate in candidates:
        if candidate and candidate.strip():
            return urljoin(base_url, candidate.strip())
    return None


def extract_with_trafilatura(html: str, url: str) -> str | None:
    """Extract the main article body as HTML (Readability-style extraction)."""
    try:
        return trafilatura.extract(
            html,
            url=url,
            output_format="html",
            include_links=True,
            include_images=True,
            include_tables=True,
            favor_recall=True,  # Prefer more content over precision
        )
    except Exception as e:
        logger.debug(f"trafilatura failed on {url}: {e}")
        return None


def extract_with_beautifulsoup(soup: BeautifulSoup) -> str | None:
    """Fallback extraction using BeautifulSoup heuristics. Mutates soup."""
    # Remove page chrome
    for tag in soup.find_all([
        "script", "style", "nav", "header", "footer", "aside",
        "noscript", "iframe", "form", "button", "input"
    ]):
        tag.decompose()

    # Remove common ad/social elements
    for selector in [
        "[class*='ad-']", "[class*='advertisement']",
        "[class*='social']", "[class*='share']",
        "[class*='related']", "[class*='recommended']",
        "[class*='newsletter']", "[class*='subscribe']",
        "[id*='comment']", "[class*='comment']",
    ]:
        for element in soup.select(selector):
            element.decompose()

    article = (
        soup.find("article") or
        soup.find(class_=re.compile(r"^(article|post|post-content|entry-content|story)$", re.I)) or
        soup.find(attrs={"role": "main"}) or
        soup.find("main") or
        soup.body
    )
    if article is None:
        return None

    parts = [
        str(elem)
        for elem in article.find_all(["p", "h2", "h3", "h4", "ul", "ol", "blockquote", "pre", "figure"])
        if elem.get_text(strip=True) or elem.find("img")
    ]
    content = "\n".join(parts)
    return re.sub(r"\n{3,}", "\n\n", content) or None


def extract_page(html: str, url: str, min_content_length: int, want_image: bool) -> PageExtraction:
    """Run content extraction and (optionally) image discovery on one page."""
    soup = BeautifulSoup(html, "html.parser")
    image_url = find_image_url(soup, url) if want_image else None

    content = extract_with_trafilatura(html, url)
    if not content or text_length(content) < min_content_length:
        content = extract_with_beautifulsoup(soup)
        if content and text_length(content) < min_content_length:
            content = None

    return PageExtraction(content=content, image_url=image_url)


class ContentExtractor:
    """Fetches article pages and writes extracted content/images back to the store."""

    def __init__(
        self,
        db: "Database",
        timeout: int = 10,
        batch_size: int = 5,
        min_content_length: int = 200,
        user_agent: str | None = None,
        validate_urls: bool = True,
    ):
        self.db = db
        self.timeout = timeout
        self.batch_size = max(1, batch_size)
        self.min_content_length = min_content_length
        self.validate_urls = validate_urls
        self.headers = {
            "User-Agent": user_agent or BROWSER_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }

    async def extract_content(self, refs: list[ArticleRef]) -> ExtractionResult:
        """
        Enrich a batch of articles.

        Never raises: fetch, parse and store failures are logged per article.
        processed_count is the number of articles whose content was replaced.
        """
        valid = [ref for ref in refs if ref.id and ref.url]
        processed = 0
        if not valid:
            return ExtractionResult(requested=len(refs), processed_count=0)

        logger.info(f"Extracting content for {len(valid)} articles")
        try:
            async with aiohttp.ClientSession(headers=self.headers) as session:
                for i in range(0, len(valid), self.batch_size):
                    batch = valid[i:i + self.batch_size]
                    outcomes = await asyncio.gather(
                        *(self._process(session, ref) for ref in batch)
                    )
                    processed += sum(1 for ok in outcomes if ok)
        except Exception:
            logger.exception("Content extraction run aborted")

        logger.info(f"Processed {len(valid)} articles, successfully extracted {processed}")
        return ExtractionResult(requested=len(refs), processed_count=processed)

    async def backfill_images(self, limit: int = 20) -> int:
        """
        Look up images for the most recent articles that have none.

        Returns the number of images found.
        """
        refs = self.db.list_articles_missing_images(limit)
        if not refs:
            return 0

        logger.info(f"Backfilling images for {len(refs)} articles")
        found = 0
        async with aiohttp.ClientSession(headers=self.headers) as session:
            for ref in refs:
                try:
                    html, final_url = await self._fetch_page(session, ref.url)
                    soup = await asyncio.to_thread(BeautifulSoup, html, "html.parser")
                    image_url = find_image_url(soup, final_url)
                    if image_url and self.db.update_article(ref.id, image_url=image_url):
                        found += 1
                        logger.debug(f"Found image for: {ref.url}")
                except ExtractionError as e:
                    logger.warning(str(e))
                except Exception as e:
                    logger.error(f"Failed to backfill image for {ref.url}: {e}")
        return found

    async def _process(self, session: aiohttp.ClientSession, ref: ArticleRef) -> bool:
        """Fetch, extract and store one article. Returns True if content was updated."""
        try:
            html, final_url = await self._fetch_page(session, ref.url)
            extraction = await asyncio.to_thread(
                extract_page, html, final_url, self.min_content_length, not ref.image_url
            )

            if extraction.content is None and extraction.image_url is None:
                logger.info(f"Could not extract content for: {ref.url}")
                return False

            updated = self.db.update_article(
                ref.id,
                content=extraction.content,
                image_url=extraction.image_url,
            )
            if updated and extraction.content is not None:
                logger.debug(f"Extracted and updated: {ref.url}")
                return True
            return False
        except ExtractionError as e:
            logger.warning(str(e))
        except Exception as e:
            logger.error(f"Error processing {ref.url}: {e}")
        return False

    async def _fetch_page(self, session: aiohttp.ClientSession, url: str) -> tuple[str, str]:
        """Fetch an article page. Returns (html, final_url)."""
        if self.validate_urls:
            try:
                validate_url(url)
            except SSRFError as e:
                raise ExtractionError(url, str(e)) from e

        try:
            async with session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                allow_redirects=True,
            ) as resp:
                if resp.status >= 400:
                    raise ExtractionError(url, f"HTTP {resp.status} {resp.reason}")
                if "html" not in (resp.content_type or "") and "xml" not in (resp.content_type or ""):
                    raise ExtractionError(url, f"Not an HTML page ({resp.content_type})")
                html = await resp.text(errors="replace")
                return html, str(resp.url)
        except asyncio.TimeoutError as e:
            raise ExtractionError(url, f"Timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise ExtractionError(url, f"Failed to fetch: {e}") from e
