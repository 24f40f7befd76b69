"""Fetch organization web pages and reduce them to title + main text."""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; KnowledgeChat-Bot/1.0)"

# Tried in order; the first present element supplies the page text
CONTENT_SELECTORS = (
    "main",
    ".content",
    ".main-content",
    "article",
    ".post-content",
    ".page-content",
    "body",
)

STRIPPED_TAGS = ("script", "style", "noscript", "nav", "footer", "header", "svg")

MIN_CONTENT_CHARS = 100


@dataclass(frozen=True)
class ScrapedPage:
    url: str
    title: str
    content: str


def parse_page(url: str, html: str) -> ScrapedPage | None:
    """Extract title and collapsed main text; None when the page is too thin."""
    soup = BeautifulSoup(html, "html.parser")

    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
    if not title:
        h1 = soup.find("h1")
        title = h1.get_text(strip=True) if h1 else ""

    for tag in soup(list(STRIPPED_TAGS)):
        tag.decompose()

    content = ""
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            content = element.get_text(separator=" ")
            break

    content = re.sub(r"\s+", " ", content).strip()
    if len(content) < MIN_CONTENT_CHARS:
        return None
    return ScrapedPage(url=url, title=title or url, content=content)


class WebScraper:
    """Fetches a fixed list of pages under one base URL."""

    def __init__(
        self,
        base_url: str,
        paths: list[str],
        timeout_s: float = 60.0,
        request_timeout_s: float = 15.0,
        delay_s: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.paths = paths
        self.timeout_s = timeout_s
        self.request_timeout_s = request_timeout_s
        self.delay_s = delay_s
        self._transport = transport
        self._sleep = sleep_fn or asyncio.sleep

    @property
    def urls(self) -> list[str]:
        return [self.base_url] + [f"{self.base_url}{path}" for path in self.paths]

    async def scrape(self) -> list[ScrapedPage]:
        """Fetch every page; failures are logged and skipped.

        Pages collected before the overall timeout are returned.
        """
        pages: list[ScrapedPage] = []
        try:
            async with asyncio.timeout(self.timeout_s):
                async with httpx.AsyncClient(
                    headers={"User-Agent": USER_AGENT},
                    timeout=self.request_timeout_s,
                    follow_redirects=True,
                    transport=self._transport,
                ) as client:
                    for index, url in enumerate(self.urls):
                        if index and self.delay_s:
                            await self._sleep(self.delay_s)
                        page = await self._fetch(client, url)
                        if page is not None:
                            pages.append(page)
        except TimeoutError:
            logger.warning(
                f"Scrape of {self.base_url} stopped after {self.timeout_s}s "
                f"with {len(pages)} pages"
            )
        return pages

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> ScrapedPage | None:
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to scrape {url}: {e}")
            return None

        page = parse_page(url, response.text)
        if page is None:
            logger.info(f"Skipping {url}: not enough content")
        return page
