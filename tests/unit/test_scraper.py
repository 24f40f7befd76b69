"""Tests for organization page scraping (no real network calls)."""

import httpx
import pytest

from backend.app.org_knowledge.scraper import WebScraper, parse_page

FILLER = "Our organization delivers water, roads and housing projects across the region. " * 3


def html_page(title: str, body: str) -> str:
    return (
        f"<html><head><title>{title}</title><style>.x{{}}</style></head>"
        f"<body><nav>Home | About</nav><main><h1>{title}</h1><p>{body}</p>"
        "<script>track()</script></main><footer>Copyright</footer></body></html>"
    )


def test_parse_page_prefers_main_content() -> None:
    page = parse_page("https://org.example/about", html_page("About Us", FILLER))

    assert page is not None
    assert page.title == "About Us"
    assert page.content.startswith("About Us Our organization delivers")
    assert "track()" not in page.content
    assert "Home | About" not in page.content
    assert "Copyright" not in page.content


def test_parse_page_uses_h1_then_url_for_title() -> None:
    no_title = f"<html><body><h1>Services</h1><div>{FILLER}</div></body></html>"
    bare = f"<html><body><div>{FILLER}</div></body></html>"

    assert parse_page("https://org.example/services", no_title).title == "Services"
    assert parse_page("https://org.example/x", bare).title == "https://org.example/x"


def test_parse_page_skips_thin_pages() -> None:
    assert parse_page("https://org.example/contact", html_page("Contact", "Call us.")) is None


@pytest.mark.asyncio
async def test_scrape_fetches_base_and_paths_and_skips_failures() -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        if request.url.path == "/news":
            return httpx.Response(500)
        if request.url.path == "/contact":
            return httpx.Response(200, text=html_page("Contact", "Call us."))
        return httpx.Response(200, text=html_page(f"Page {request.url.path}", FILLER))

    delays: list[float] = []

    async def record_sleep(seconds: float) -> None:
        delays.append(seconds)

    scraper = WebScraper(
        base_url="https://org.example/",
        paths=["/about", "/news", "/contact"],
        delay_s=1.0,
        transport=httpx.MockTransport(handler),
        sleep_fn=record_sleep,
    )

    pages = await scraper.scrape()

    assert len(requested) == 4
    assert requested[1:] == ["/about", "/news", "/contact"]
    assert [p.url for p in pages] == ["https://org.example", "https://org.example/about"]
    assert delays == [1.0, 1.0, 1.0]


@pytest.mark.asyncio
async def test_scrape_sends_user_agent() -> None:
    agents: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        agents.append(request.headers["user-agent"])
        return httpx.Response(200, text=html_page("Home", FILLER))

    scraper = WebScraper(
        base_url="https://org.example",
        paths=[],
        delay_s=0,
        transport=httpx.MockTransport(handler),
    )

    await scraper.scrape()

    assert agents and "KnowledgeChat-Bot" in agents[0]
