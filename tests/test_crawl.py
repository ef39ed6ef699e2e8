"""Tests for src/fieldguide_mcp/sources/crawl.py: bounded BFS search."""

import pytest
from conftest import CROPS_HTML, CROPS_URL, EN, fake_fetch

from fieldguide_mcp.markup import parse_html
from fieldguide_mcp.sources.crawl import collect_links, collect_sections, crawl_search
from fieldguide_mcp.sources.extract import Page

INDEX = f"{EN}index.html"
ORES = f"{EN}tfg_ores.html"

SITE = {
    INDEX: (
        "<h1>Field Guide</h1>"
        '<a href="mechanics/crops.html">Crops</a>'
        '<a href="tfg_ores.html#top">Ores</a>'
        '<a href="https://example.org/elsewhere.html">External</a>'
        '<a href="../ja_jp/index.html">日本語</a>'
    ),
    ORES: (
        "<h1>Ore Glossary</h1>"
        '<h2 id="blast_furnace">Blast Furnace</h2><p>Smelts pig iron.</p>'
        '<a href="#bloomery">Bloomery</a>'
        '<div id="cassiterite"><p>Cassiterite is a tin ore.</p></div>'
    ),
    CROPS_URL: CROPS_HTML,
}


def _chain(length: int) -> dict[str, str]:
    """index -> page1 -> page2 -> ... each with a matching section."""
    pages = {}
    for i in range(length):
        url = INDEX if i == 0 else f"{EN}page{i}.html"
        pages[url] = f'<h2 id="iron_{i}">Iron {i}</h2><a href="page{i + 1}.html">next</a>'
    return pages


# ---------------------------------------------------------------------------
# Page helpers
# ---------------------------------------------------------------------------


class TestCollect:
    def test_sections(self):
        page = Page.parse(ORES, SITE[ORES])
        sections = collect_sections(page)
        assert ("blast_furnace", "Blast Furnace") in sections
        assert ("bloomery", "Bloomery") in sections
        assert ("cassiterite", "Cassiterite is a tin ore.") in sections

    def test_sections_skip_denylisted(self):
        page = Page.parse(
            INDEX,
            '<h2 id="bd-theme-text">Theme</h2><a href="#glb-viewer">Viewer</a>'
            '<div id="nav-primary">Navigation</div><h2 id="ok">Ok</h2>',
        )
        assert collect_sections(page) == [("ok", "Ok")]

    def test_section_title_cut(self):
        page = Page.parse(INDEX, f'<div id="long">{"x" * 300}</div>')
        assert collect_sections(page) == [("long", "x" * 120)]

    def test_links(self, locator):
        root = parse_html(SITE[INDEX])
        assert collect_links(root, INDEX, locator, "en_us") == [CROPS_URL, ORES]

    def test_links_canonicalized_and_deduped(self, locator):
        root = parse_html(
            '<a href="mechanics/">a</a><a href="mechanics/index.html#x">b</a>'
            '<a href="#local">c</a><a>no href</a>'
        )
        assert collect_links(root, INDEX, locator, "en_us") == [f"{EN}mechanics/index.html"]


# ---------------------------------------------------------------------------
# crawl_search
# ---------------------------------------------------------------------------


class TestCrawlSearch:
    @pytest.mark.asyncio
    async def test_page_match(self, locator):
        calls = []
        results = await crawl_search("crops", fake_fetch(SITE, calls), locator)
        assert results[0].title == "Crops"
        assert results[0].url == CROPS_URL
        assert f"{CROPS_URL}#crops" in [r.url for r in results]

    @pytest.mark.asyncio
    async def test_section_match(self, locator):
        calls = []
        results = await crawl_search("Blast Furnace", fake_fetch(SITE, calls), locator)
        assert [r.url for r in results] == [f"{ORES}#blast_furnace"]
        assert results[0].title == "Blast Furnace"

    @pytest.mark.asyncio
    async def test_fetch_failures_skipped(self, locator):
        calls = []
        results = await crawl_search("cassiterite", fake_fetch(SITE, calls), locator)
        # both tfg_ores/* seeds are missing from the site
        assert f"{EN}tfg_ores/earth_ore_index.html" in calls
        assert [r.url for r in results] == [f"{ORES}#cassiterite"]

    @pytest.mark.asyncio
    async def test_stays_in_locale(self, locator):
        calls = []
        await crawl_search("nothing_matches", fake_fetch(SITE, calls), locator)
        assert all(url.startswith(EN) for url in calls)

    @pytest.mark.asyncio
    async def test_never_fetches_twice(self, locator):
        calls = []
        site = {
            INDEX: '<a href="a.html">a</a><a href="b.html">b</a>',
            f"{EN}a.html": '<a href="b.html">b</a><a href="index.html">home</a>',
            f"{EN}b.html": '<a href="a.html">a</a><a href="./">home</a>',
        }
        await crawl_search("zzz", fake_fetch(site, calls), locator, seeds=("",))
        assert len(calls) == len(set(calls)) == 3

    @pytest.mark.asyncio
    async def test_page_budget(self, locator):
        calls = []
        results = await crawl_search(
            "iron", fake_fetch(_chain(20), calls), locator, max_pages=5, limit=100, seeds=("",)
        )
        assert len(calls) == 5
        assert len(results) == 5

    @pytest.mark.asyncio
    async def test_failed_fetches_count_against_budget(self, locator):
        calls = []
        await crawl_search("iron", fake_fetch({}, calls), locator, max_pages=2)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_limit(self, locator):
        calls = []
        results = await crawl_search(
            "iron", fake_fetch(_chain(20), calls), locator, limit=3, seeds=("",)
        )
        assert len(results) == 3
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_denylisted_never_returned(self, locator):
        calls = []
        site = {
            INDEX: (
                '<h2 id="bd-theme-text">Theme</h2>'
                '<a href="#bd-theme-text">Toggle theme</a>'
                '<span id="bd-theme">Theme</span>'
            )
        }
        results = await crawl_search("theme", fake_fetch(site, calls), locator, seeds=("",))
        assert results == []

    @pytest.mark.asyncio
    async def test_denylisted_word_in_page_path_kept(self, locator):
        calls = []
        viewer = f"{EN}glb-viewer-guide.html"
        site = {
            INDEX: '<a href="glb-viewer-guide.html">Viewer</a>',
            viewer: "<h1>Viewer Guide</h1><p>How the model viewer works.</p>",
        }
        results = await crawl_search("guide", fake_fetch(site, calls), locator, seeds=("",))
        assert [(r.title, r.url) for r in results] == [("Viewer Guide", viewer)]

    @pytest.mark.asyncio
    async def test_empty_query(self, locator):
        calls = []
        assert await crawl_search(" -- ", fake_fetch(SITE, calls), locator) == []
        assert calls == []

    @pytest.mark.asyncio
    async def test_other_locale(self, locator):
        calls = []
        ja_index = f"{locator.base_url}ja_jp/index.html"
        site = {ja_index: '<h2 id="ore">鉱石 ore</h2>'}
        results = await crawl_search("ore", fake_fetch(site, calls), locator, lang="ja_jp")
        assert calls[0] == ja_index
        assert results[0].url == f"{ja_index}#ore"
