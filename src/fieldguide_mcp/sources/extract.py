"""Section excerpts, page summaries and tables of contents.

Everything here works on an already-fetched ``Page`` and returns text bounded
by a character budget (4096 by default, the size of a chat embed
description). Nothing in this module performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urljoin

from loguru import logger

from fieldguide_mcp.markup import Element, heading_level, parse_html
from fieldguide_mcp.models import PageArtifact, Section, TocItem
from fieldguide_mcp.sources.locator import is_denylisted, normalize_id
from fieldguide_mcp.sources.text import (
    PROSE_TAGS,
    is_breadcrumb,
    is_metadata_line,
    is_prose_block,
    to_block,
)

DESCRIPTION_LIMIT = 4096
TOC_LIMIT = 60
DEFAULT_TITLE = "Field Guide"
PLACEHOLDER = "Open the page for details."
ELLIPSIS = "..."

# Main prose column of the guide theme.
CONTENT_ROOT_CLASS = "col-md-9"

# A first block this close in length to a title that it starts with is an echo.
_NEAR_DUPLICATE_SLACK = 15


@dataclass(slots=True)
class Page:
    """A fetched guide page: its canonical URL and parsed tree."""

    url: str
    root: Element

    @classmethod
    def parse(cls, url: str, html: str) -> Page:
        return cls(url=url, root=parse_html(html))

    @property
    def content_root(self) -> Element | None:
        return next(
            (e for e in self.root.iter_elements() if CONTENT_ROOT_CLASS in e.classes),
            None,
        )


def truncate_with_ellipsis(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    """Cut *text* to exactly *limit* characters ending in ``...`` if too long."""
    if not text or len(text) <= limit:
        return text
    return text[: max(0, limit - len(ELLIPSIS))] + ELLIPSIS


def extract_title(page: Page) -> str:
    """First non-empty h1, then h2, then ``<title>``."""
    for tag in ("h1", "h2", "title"):
        found = page.root.find_first(tag)
        if found is not None and found.text().strip():
            return found.text().strip()
    return DEFAULT_TITLE


def first_image(page: Page, scope: Element | None = None) -> str | None:
    """Absolute ``src`` of the first image in *scope* (default: whole page)."""
    img = (scope or page.root).find_first("img")
    if img is None:
        return None
    src = img.get("src").strip()
    if not src:
        return None
    return urljoin(page.url, src)


def _dedupe_key(text: str) -> str:
    # normalize_id drops every non-latin character, so fall back to the
    # casefolded text for CJK and Cyrillic pages
    return normalize_id(text) or " ".join(text.casefold().split())


def _clean_blocks(parts: list[str], title: str, page_title: str) -> list[str]:
    """Drop blocks that repeat the section or page title, and repeats."""
    title_key = _dedupe_key(title)
    page_key = _dedupe_key(page_title)
    cleaned: list[str] = []
    seen: set[str] = set()
    for block in parts:
        text = block.strip()
        if not text:
            continue
        key = _dedupe_key(text)
        if key in (title_key, page_key):
            continue
        if not cleaned and (
            (title_key and key.startswith(title_key)
             and len(text) <= len(title) + _NEAR_DUPLICATE_SLACK)
            or (page_key and key.startswith(page_key)
                and len(text) <= len(page_title) + _NEAR_DUPLICATE_SLACK)
        ):
            continue
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(text)
    return cleaned


def _in_content_root(el: Element) -> Element | None:
    return el.closest(lambda e: CONTENT_ROOT_CLASS in e.classes)


def extract_section(
    page: Page, fragment_id: str | None, limit: int = DESCRIPTION_LIMIT
) -> Section | None:
    """Text owned by the element with id *fragment_id*.

    For a heading, ownership runs over the following siblings up to the next
    heading of the same or a higher rank. Deeper headings become bold lines.
    The walk also stops when it leaves the main content column or reaches a
    breadcrumb.
    """
    if not fragment_id or is_denylisted(fragment_id):
        return None
    anchor = page.root.find_by_id(fragment_id)
    if anchor is None:
        return None

    level = heading_level(anchor)
    content_root = _in_content_root(anchor)
    parts: list[str] = []

    for cursor in anchor.next_element_siblings():
        cursor_level = heading_level(cursor)
        if level is not None and cursor_level is not None and cursor_level <= level:
            break
        if content_root is not None and not content_root.contains(cursor):
            break
        if is_breadcrumb(cursor):
            break
        if cursor_level is not None:
            heading_text = cursor.text().strip()
            if heading_text:
                parts.append(f"**{heading_text}**")
            continue
        if not is_prose_block(cursor):
            continue
        block = to_block(cursor, page.url)
        if block:
            parts.append(block)
        if len("\n\n".join(parts)) > limit:
            break

    title = anchor.text().strip() or fragment_id
    cleaned = _clean_blocks(parts, title, extract_title(page))
    description = truncate_with_ellipsis("\n\n".join(cleaned), limit)
    image = first_image(page, anchor.parent) or first_image(page)
    return Section(title=title, description=description, image=image)


def _is_nested_or_navigation(block: Element, scope: Element) -> bool:
    """True if *block* sits in another prose block or in navigation."""
    for ancestor in block.ancestors():
        if ancestor is scope:
            return False
        if ancestor.tag in PROSE_TAGS or is_breadcrumb(ancestor):
            return True
    return False


def extract_summary(page: Page, title: str, limit: int = DESCRIPTION_LIMIT) -> str:
    """Introductory text of a page.

    Prefers the section under the heading that carries the page title;
    otherwise collects whole prose blocks from the content column until the
    next one would overflow *limit*.
    """
    header = next(
        (h for h in page.root.find_all("h1", "h2", "h3") if h.text().strip() == title),
        None,
    )
    if header is not None and header.id and not is_denylisted(header.id):
        section = extract_section(page, header.id, limit)
        if section is not None and section.description:
            return section.description

    scope = page.content_root or page.root
    blocks: list[str] = []
    length = 0
    for block_el in scope.find_all(*PROSE_TAGS):
        if _is_nested_or_navigation(block_el, scope):
            continue
        text = to_block(block_el, page.url)
        if not text or is_metadata_line(text):
            continue
        add = (2 if blocks else 0) + len(text)
        if length + add > limit:
            break
        blocks.append(text)
        length += add
    return truncate_with_ellipsis("\n\n".join(blocks), limit)


def build_toc(
    page: Page, base_url: str, title: str, max_items: int = TOC_LIMIT
) -> list[TocItem]:
    """h2/h3 headings with ids, deduplicated by (title, fragment)."""
    items: list[TocItem] = []
    seen: set[tuple[str, str]] = set()
    for heading in page.root.find_all("h2", "h3"):
        heading_id = heading.id
        text = heading.text().strip()
        if not heading_id or not text or is_denylisted(heading_id) or text == title:
            continue
        key = (_dedupe_key(text), heading_id)
        if key in seen:
            continue
        seen.add(key)
        items.append(TocItem(title=text, url=f"{base_url}#{heading_id}"))
        if len(items) >= max_items:
            break
    return items


def compose_description(
    summary: str, toc_items: list[TocItem], limit: int = DESCRIPTION_LIMIT
) -> str:
    """Summary followed by as many whole TOC lines as fit in *limit*."""
    base = (summary or "").strip()
    picked: list[str] = []
    used = len(base)
    for item in toc_items:
        line = item.to_line()
        add = len(line) + (1 if picked else (2 if base else 0))
        if used + add > limit:
            break
        picked.append(line)
        used += add
    if not picked:
        return truncate_with_ellipsis(base, limit)
    toc_text = "\n".join(picked)
    return f"{base}\n\n{toc_text}" if base else toc_text


def build_artifact(
    page: Page, fragment: str | None = None, limit: int = DESCRIPTION_LIMIT
) -> PageArtifact:
    """Renderable result for a page, or for one section when *fragment* resolves."""
    title = extract_title(page)
    image = first_image(page)

    if fragment:
        section = extract_section(page, fragment, limit)
        if section is not None:
            return PageArtifact(
                title=f"{section.title} - {title}",
                url=f"{page.url}#{fragment}",
                description=section.description or PLACEHOLDER,
                image=section.image or image,
            )
        logger.debug(f"Fragment #{fragment} not usable on {page.url}, using page summary")

    summary = extract_summary(page, title, limit)
    toc = build_toc(page, page.url, title)
    return PageArtifact(
        title=title,
        url=page.url,
        description=compose_description(summary, toc, limit) or PLACEHOLDER,
        image=image,
        toc_items=toc,
    )
