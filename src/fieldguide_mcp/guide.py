"""The Field Guide engine as one explicit component.

``FieldGuide`` owns the HTTP client, the locator, the index cache and the
session store, and exposes the operations the MCP tools and CLI call. Tests
construct it with a mock-transport client and a fake clock.
"""

import time
from collections.abc import Callable

import httpx
from loguru import logger

from fieldguide_mcp.errors import FetchError, IndexFormatError
from fieldguide_mcp.locales import DEFAULT_LANG, TOP_LINKS
from fieldguide_mcp.models import Location, PageArtifact, SearchResult
from fieldguide_mcp.sessions import SessionStore
from fieldguide_mcp.sources.crawl import CRAWL_LIMIT, MAX_PAGES, crawl_search
from fieldguide_mcp.sources.extract import (
    DEFAULT_TITLE,
    DESCRIPTION_LIMIT,
    Page,
    build_artifact,
    extract_title,
)
from fieldguide_mcp.sources.fetcher import DEFAULT_TIMEOUT, fetch_html, new_client
from fieldguide_mcp.sources.index import (
    DEFAULT_LIMIT,
    INDEX_TTL,
    SearchIndexCache,
    search_via_index,
)
from fieldguide_mcp.sources.locator import Locator

DEFAULT_BASE = "https://terrafirmagreg-team.github.io/Field-Guide-Modern/"


class FieldGuide:
    """Page lookup, search and result sessions over one guide site."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str = DEFAULT_BASE,
        default_lang: str = DEFAULT_LANG,
        clock: Callable[[], float] = time.time,
        fetch_timeout: float = DEFAULT_TIMEOUT,
        index_ttl: int = INDEX_TTL,
        index_url: str | None = None,
        session_ttl: int = 900,
        session_max: int = 1000,
        description_limit: int = DESCRIPTION_LIMIT,
        crawl_max_pages: int = MAX_PAGES,
        search_limit: int = DEFAULT_LIMIT,
        crawl_limit: int = CRAWL_LIMIT,
        user_agent: str = "fieldguide-mcp/1.0",
    ):
        self._owns_client = client is None
        self.client = client or new_client(fetch_timeout, user_agent)
        self.locator = Locator(base_url, default_lang)
        self.clock = clock
        self.fetch_timeout = fetch_timeout
        self.description_limit = description_limit
        self.crawl_max_pages = crawl_max_pages
        self.search_limit = search_limit
        self.crawl_limit = crawl_limit
        self.index = SearchIndexCache(
            self.client,
            self.locator,
            ttl=index_ttl,
            clock=clock,
            index_url=index_url,
            timeout=fetch_timeout,
        )
        self.sessions = SessionStore(ttl=session_ttl, max_sessions=session_max, clock=clock)

    @classmethod
    def from_settings(cls, settings=None, client: httpx.AsyncClient | None = None):
        """Build from the environment-backed ``Settings``."""
        if settings is None:
            from fieldguide_mcp.config import settings as default_settings

            settings = default_settings
        return cls(
            client,
            base_url=settings.get_content_base(),
            default_lang=settings.resolve_lang(),
            fetch_timeout=settings.fetch_timeout,
            index_ttl=settings.index_ttl,
            index_url=settings.search_index_url or None,
            session_ttl=settings.session_ttl,
            session_max=settings.session_max,
            description_limit=settings.description_limit,
            crawl_max_pages=settings.crawl_max_pages,
            search_limit=settings.search_limit,
            crawl_limit=settings.crawl_limit,
            user_agent=settings.user_agent,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def locate(self, path_or_url: str, lang: str | None = None) -> Location:
        return self.locator.resolve(path_or_url, lang)

    async def fetch_html(self, url: str) -> str:
        return await fetch_html(url, client=self.client, timeout=self.fetch_timeout)

    async def fetch_page(self, url: str) -> Page:
        return Page.parse(url, await self.fetch_html(url))

    async def build_page_artifact(
        self, url_or_path: str, lang: str | None = None
    ) -> PageArtifact:
        """Summary of a page, or of one section when the address has a fragment.

        Raises:
            LocatorError: the address cannot be resolved.
            FetchError: the page could not be retrieved.
        """
        location = self.locate(url_or_path, lang)
        page = await self.fetch_page(location.canonical_url)
        return build_artifact(page, location.fragment, self.description_limit)

    async def fetch_page_title(
        self, url_or_path: str, lang: str | None = None
    ) -> SearchResult:
        location = self.locate(url_or_path, lang)
        try:
            page = await self.fetch_page(location.canonical_url)
        except FetchError as e:
            logger.warning(f"Title lookup failed for {location.canonical_url}: {e.reason}")
            return SearchResult(title=DEFAULT_TITLE, url=location.url)
        return SearchResult(title=extract_title(page), url=location.url)

    def top_links(self, lang: str | None = None) -> list[SearchResult]:
        """The curated entry pages for *lang*."""
        return [
            SearchResult(
                title=label,
                url=self.locator.canonical(f"{self.locator.locale_base(lang)}{path}", lang),
            )
            for label, path in TOP_LINKS
        ]

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(
        self, query: str, limit: int | None = None, lang: str | None = None
    ) -> list[SearchResult]:
        """Index search, falling back to a crawl on failure or no hits.

        Without an explicit *limit* the index returns up to ``search_limit``
        results and the crawl stops at ``crawl_limit`` matches.
        """
        lang = self.locator.lang_or_default(lang)
        try:
            results = await search_via_index(
                query,
                self.index,
                self.locator,
                limit=self.search_limit if limit is None else limit,
                lang=lang,
            )
        except (FetchError, IndexFormatError) as e:
            logger.warning(f"Index search unavailable, crawling instead: {e}")
            results = []

        if results:
            logger.info(f"Index search '{query}' ({lang}): {len(results)} results")
            return results

        return await crawl_search(
            query,
            self.fetch_html,
            self.locator,
            lang=lang,
            max_pages=self.crawl_max_pages,
            limit=self.crawl_limit if limit is None else max(1, limit),
        )
