"""Tests for src/fieldguide_mcp/sources/extract.py: sections, summaries, TOC."""

from conftest import CROPS_URL, EN

from fieldguide_mcp.models import TocItem
from fieldguide_mcp.sources.extract import (
    PLACEHOLDER,
    Page,
    build_artifact,
    build_toc,
    compose_description,
    extract_section,
    extract_summary,
    extract_title,
    first_image,
    truncate_with_ellipsis,
)

IMAGE_URL = f"{EN}_images/crops.png"


def _page(body: str, url: str = CROPS_URL) -> Page:
    return Page.parse(url, f"<html><body>{body}</body></html>")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestTruncate:
    def test_under_budget_unchanged(self):
        assert truncate_with_ellipsis("short", 10) == "short"

    def test_exact_budget_unchanged(self):
        assert truncate_with_ellipsis("x" * 10, 10) == "x" * 10

    def test_over_budget(self):
        result = truncate_with_ellipsis("x" * 5000, 4096)
        assert len(result) == 4096
        assert result.endswith("...")


class TestTitleAndImage:
    def test_title_from_h1(self, crops_page):
        assert extract_title(crops_page) == "Crops"

    def test_title_falls_back_to_h2_then_title(self):
        assert extract_title(_page("<h1> </h1><h2>Second</h2>")) == "Second"
        page = Page.parse(CROPS_URL, "<html><head><title>Doc</title></head></html>")
        assert extract_title(page) == "Doc"

    def test_title_default(self):
        assert extract_title(_page("<p>no headings</p>")) == "Field Guide"

    def test_first_image_absolute(self, crops_page):
        assert first_image(crops_page) == IMAGE_URL

    def test_first_image_missing(self):
        assert first_image(_page("<p>x</p>")) is None


# ---------------------------------------------------------------------------
# extract_section
# ---------------------------------------------------------------------------


class TestExtractSection:
    def test_stops_at_same_level_heading(self, crops_page):
        section = extract_section(crops_page, "planting")
        assert section.title == "Planting"
        assert section.description == (
            "Plant *seeds* on farmland. See "
            f"[Geology]({EN}the_world/geology.html).\n\n"
            "- Wheat\n- Rice\n\n"
            "**Nutrients**\n\n"
            "Each crop consumes one of `N`, `P` or `K`."
        )
        assert "Break the crop" not in section.description

    def test_widgets_are_skipped(self, crops_page):
        section = extract_section(crops_page, "nutrients")
        assert "Seeds" not in section.description
        assert section.description == "Each crop consumes one of `N`, `P` or `K`."

    def test_ordered_list_and_trailing_widget(self, crops_page):
        section = extract_section(crops_page, "harvesting")
        assert section.description == (
            "Break the crop when it is fully grown.\n\n1. Wait\n2. Harvest"
        )

    def test_image_from_enclosing_block(self, crops_page):
        assert extract_section(crops_page, "planting").image == IMAGE_URL

    def test_missing_id(self, crops_page):
        assert extract_section(crops_page, "no-such-section") is None
        assert extract_section(crops_page, None) is None

    def test_denylisted_id_never_returned(self, crops_page):
        assert extract_section(crops_page, "bd-theme-text") is None

    def test_stops_at_breadcrumb(self):
        page = _page(
            '<div class="col-md-9"><h2 id="a">A</h2><p>one</p>'
            '<nav aria-label="breadcrumb"><p>x</p></nav><p>two</p></div>'
        )
        assert extract_section(page, "a").description == "one"

    def test_non_heading_anchor_collects_until_content_ends(self):
        page = _page(
            '<div class="col-md-9"><span id="anchor">Iron notes</span>'
            "<p>first</p><h4>Sub</h4><p>second</p></div>"
        )
        section = extract_section(page, "anchor")
        assert section.title == "Iron notes"
        assert section.description == "first\n\n**Sub**\n\nsecond"

    def test_title_echo_removed(self):
        page = _page(
            '<h1>Bloomery</h1><h2 id="use">Usage</h2><p>Usage</p><p>Usage notes</p>'
            "<p>Bloomery</p><p>Light it.</p><p>Light it.</p>"
        )
        assert extract_section(page, "use").description == "Light it."

    def test_budget(self):
        paragraphs = "".join(f"<p>{'word ' * 100}{i}</p>" for i in range(30))
        page = _page(f'<h2 id="long">Long</h2>{paragraphs}')
        section = extract_section(page, "long", limit=1000)
        assert len(section.description) == 1000
        assert section.description.endswith("...")

    def test_cjk_blocks_not_collapsed(self):
        page = _page("<h1>作物</h1><h2 id='s'>植え付け</h2><p>種を植える。</p><p>水をやる。</p>")
        assert extract_section(page, "s").description == "種を植える。\n\n水をやる。"


# ---------------------------------------------------------------------------
# Summary and TOC
# ---------------------------------------------------------------------------


class TestSummary:
    def test_prefers_title_section(self, crops_page):
        summary = extract_summary(crops_page, "Crops")
        assert summary.startswith("Crops are plants that can be **farmed** for food.")
        assert "Recipe:" not in summary
        assert "**Planting**" in summary

    def test_scan_without_title_heading(self):
        page = _page(
            '<nav><ul><li>Home</li></ul></nav><div class="col-md-9">'
            "<p>Intro text.</p><p>Multiblock: bloomery</p>"
            "<ol><li>one</li><li><ul><li>nested</li></ul></li></ol></div>"
        )
        summary = extract_summary(page, "Other Title")
        assert summary == "Intro text.\n\n1. one\n2. nested"

    def test_scan_stops_before_overflow(self):
        page = _page("<p>" + "a" * 60 + "</p><p>" + "b" * 60 + "</p>")
        assert extract_summary(page, "T", limit=100) == "a" * 60

    def test_empty_page(self):
        assert extract_summary(_page(""), "T") == ""


class TestToc:
    def test_headings_in_order(self, crops_page):
        toc = build_toc(crops_page, CROPS_URL, "Crops")
        assert toc == [
            TocItem("Planting", f"{CROPS_URL}#planting"),
            TocItem("Nutrients", f"{CROPS_URL}#nutrients"),
            TocItem("Harvesting", f"{CROPS_URL}#harvesting"),
        ]

    def test_filters_and_dedupes(self):
        page = _page(
            '<h2 id="t">Title</h2><h2 id="bd-theme-text">Theme</h2><h2>No id</h2>'
            '<h3 id="a">Alpha</h3><h3 id="a">Alpha</h3><h3 id="b">Alpha</h3><h4 id="d">Deep</h4>'
        )
        toc = build_toc(page, CROPS_URL, "Title")
        assert [item.url.rsplit("#", 1)[1] for item in toc] == ["a", "b"]

    def test_cap(self):
        page = _page("".join(f'<h2 id="h{i}">Heading {i}</h2>' for i in range(80)))
        assert len(build_toc(page, CROPS_URL, "T")) == 60


class TestComposeDescription:
    def test_appends_toc_after_blank_line(self):
        items = [TocItem("A", "u1"), TocItem("B", "u2")]
        assert compose_description("Intro", items) == "Intro\n\n- [A](u1)\n- [B](u2)"

    def test_drops_overflowing_lines(self):
        items = [TocItem("A", "u1"), TocItem("B", "u2")]
        # "Intro" + "\n\n" + "- [A](u1)" == 16 chars
        assert compose_description("Intro", items, limit=20) == "Intro\n\n- [A](u1)"

    def test_toc_only(self):
        assert compose_description("", [TocItem("A", "u")]) == "- [A](u)"


# ---------------------------------------------------------------------------
# build_artifact
# ---------------------------------------------------------------------------


class TestBuildArtifact:
    def test_page(self, crops_page):
        artifact = build_artifact(crops_page)
        assert artifact.title == "Crops"
        assert artifact.url == CROPS_URL
        assert artifact.image == IMAGE_URL
        assert artifact.description.endswith(
            f"- [Harvesting]({CROPS_URL}#harvesting)"
        )
        assert len(artifact.toc_items) == 3

    def test_section(self, crops_page):
        artifact = build_artifact(crops_page, "harvesting")
        assert artifact.title == "Harvesting - Crops"
        assert artifact.url == f"{CROPS_URL}#harvesting"
        assert artifact.toc_items == []

    def test_unknown_fragment_falls_back_to_page(self, crops_page):
        artifact = build_artifact(crops_page, "missing")
        assert artifact.title == "Crops"
        assert artifact.url == CROPS_URL

    def test_empty_section_placeholder(self):
        page = _page('<h1>Page</h1><h2 id="empty">Empty</h2><h2 id="next">Next</h2>')
        assert build_artifact(page, "empty").description == PLACEHOLDER

    def test_description_budget(self):
        body = "<h1>Big</h1>" + "".join(f"<p>{'x' * 500} {i}</p>" for i in range(20))
        assert len(build_artifact(_page(body)).description) <= 4096
