"""Breadth-first crawl search, used when the index is unavailable or empty.

The crawl stays inside one locale of the content tree, fetches every page at
most once and stops at whichever comes first: an empty queue, the page budget,
or ``limit`` matches. A page that fails to load is skipped.
"""

from collections import deque
from collections.abc import Awaitable, Callable
from urllib.parse import urljoin, urldefrag

from loguru import logger

from fieldguide_mcp.errors import FetchError
from fieldguide_mcp.markup import Element, heading_level
from fieldguide_mcp.models import SearchResult
from fieldguide_mcp.sources.extract import Page, extract_title
from fieldguide_mcp.sources.locator import (
    Locator,
    has_token,
    is_denylisted,
    is_denylisted_fragment,
    normalize_id,
    path_matches,
)

MAX_PAGES = 800
CRAWL_LIMIT = 25
SECTION_TITLE_LIMIT = 120

# Relative to the locale base; "" is the locale root.
DEFAULT_SEEDS: tuple[str, ...] = (
    "",
    "tfg_ores.html",
    "tfg_ores/earth_ore_index.html",
    "tfg_ores/earth_vein_index.html",
)

FetchPage = Callable[[str], Awaitable[str]]


def collect_sections(page: Page) -> list[tuple[str, str]]:
    """``(id, title)`` pairs for headings, in-page anchors and other ids."""
    sections: list[tuple[str, str]] = []
    seen: set[str] = set()

    def add(section_id: str, title: str) -> None:
        if not section_id or section_id in seen or is_denylisted(section_id):
            return
        seen.add(section_id)
        sections.append((section_id, title))

    elements = list(page.root.iter_elements())
    for el in elements:
        if heading_level(el) is not None and el.id:
            add(el.id, el.text().strip())
    for el in elements:
        href = el.get("href").strip()
        if el.tag == "a" and href.startswith("#") and len(href) > 1:
            text = el.text().strip()
            if text:
                add(href[1:], text)
    for el in elements:
        if el.id:
            text = el.text().strip()
            if len(text) >= 2:
                add(el.id, text[:SECTION_TITLE_LIMIT])
    return sections


def collect_links(root: Element, page_url: str, locator: Locator, lang: str) -> list[str]:
    """Canonical in-locale page links in document order, without repeats."""
    links: list[str] = []
    seen: set[str] = set()
    for anchor in root.find_all("a"):
        href = anchor.get("href").strip()
        if not href or href.startswith("#"):
            continue
        absolute, _ = urldefrag(urljoin(page_url, href))
        if not locator.is_internal(absolute, lang):
            continue
        canonical = locator.canonical(absolute, lang)
        if canonical not in seen:
            seen.add(canonical)
            links.append(canonical)
    return links


async def crawl_search(
    query: str,
    fetch_page: FetchPage,
    locator: Locator,
    lang: str | None = None,
    max_pages: int = MAX_PAGES,
    limit: int = CRAWL_LIMIT,
    seeds: tuple[str, ...] = DEFAULT_SEEDS,
) -> list[SearchResult]:
    """Find pages and sections whose path, id or title carries the query token.

    Args:
        fetch_page: coroutine returning the HTML of a URL, raising
            ``FetchError`` on failure.
        max_pages: hard cap on fetch attempts, failed ones included.
    """
    token = normalize_id(query)
    if not token:
        return []

    lang = locator.lang_or_default(lang)
    start = [locator.canonical(f"{locator.locale_base(lang)}{seed}", lang) for seed in seeds]
    queue: deque[str] = deque(dict.fromkeys(start))
    visited: set[str] = set(queue)
    matches: list[SearchResult] = []
    matched_urls: set[str] = set()
    fetched = 0

    def emit(title: str, url: str) -> None:
        if url in matched_urls or is_denylisted_fragment(url):
            return
        matched_urls.add(url)
        matches.append(SearchResult(title=title, url=url))

    while queue and fetched < max_pages and len(matches) < limit:
        url = queue.popleft()
        fetched += 1
        try:
            html = await fetch_page(url)
        except FetchError as e:
            logger.debug(f"Crawl skipped {url}: {e.reason}")
            continue

        page = Page.parse(url, html)
        rel_path = locator.relative(url)

        if path_matches(rel_path, token):
            emit(extract_title(page), url)

        for section_id, title in collect_sections(page):
            if len(matches) >= limit:
                break
            section_url = f"{url}#{section_id}"
            if (
                has_token(section_id, token)
                or has_token(title, token)
                or path_matches(f"{rel_path}#{section_id}", token)
            ):
                emit(title or section_id, section_url)

        for link in collect_links(page.root, url, locator, lang):
            if link not in visited:
                visited.add(link)
                queue.append(link)

    logger.info(
        f"Crawl for '{query}' scanned {fetched} pages, found {len(matches)} matches"
    )
    return matches[:limit]
