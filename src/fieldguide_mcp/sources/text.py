"""Markup to chat-ready text.

Guide pages interleave narrative prose with crafting widgets, item counters,
3D viewers and breadcrumbs. The predicates below decide what counts as prose;
``to_inline`` and ``to_block`` render what survives as lightweight markdown
(bold, italic, code, links, bullet and numbered lists).
"""

import re
from urllib.parse import urljoin

from fieldguide_mcp.markup import Element, Node, Text, heading_level

# Blocks inside any element carrying one of these classes are UI, not prose.
NON_PROSE_CLASSES: frozenset[str] = frozenset(
    {
        "crafting-recipe",
        "minecraft-text",
        "item-header",
        "glb-viewer",
        "glb-viewer-container",
    }
)

ITEM_COUNTER_CLASS = "crafting-recipe-item-count"

# Lines starting with these labels are metadata, not description.
METADATA_PREFIX_RE = re.compile(r"^(Recipe:|Multiblock:)", re.IGNORECASE)

_COUNTER_RE = re.compile(r"^[0-9]+$")

PROSE_TAGS = ("p", "ul", "ol")


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def is_breadcrumb(el: Element) -> bool:
    if el.tag == "nav":
        return True
    if "breadcrumb" in el.get("aria-label").lower():
        return True
    return "breadcrumb" in el.get("class").lower()


def _is_non_prose_container(el: Element) -> bool:
    return any(cls in NON_PROSE_CLASSES for cls in el.classes)


def is_within_non_prose(el: Element) -> bool:
    return el.closest(_is_non_prose_container) is not None


def is_item_counter(el: Element) -> bool:
    return ITEM_COUNTER_CLASS in el.get("class").lower()


def is_heading(el: Element) -> bool:
    return heading_level(el) is not None


def is_metadata_line(text: str) -> bool:
    return METADATA_PREFIX_RE.match(text.strip()) is not None


def is_counter_line(text: str) -> bool:
    return _COUNTER_RE.match(text.strip()) is not None


def is_prose_block(el: Element) -> bool:
    """A paragraph or list that is neither navigation nor inside a widget."""
    if el.tag not in PROSE_TAGS:
        return False
    return not is_breadcrumb(el) and not is_within_non_prose(el)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render(node: Node, base_url: str) -> str:
    if isinstance(node, Text):
        return node.data

    tag = node.tag
    if tag == "br":
        return "\n"
    if tag in ("strong", "b"):
        inner = to_inline(node, base_url)
        return f"**{inner}**" if inner else ""
    if tag in ("em", "i"):
        inner = to_inline(node, base_url)
        return f"*{inner}*" if inner else ""
    if tag in ("code", "kbd"):
        # zero-width space keeps an inner backtick from closing the span
        inner = to_inline(node, base_url).replace("`", "\u200b`")
        return f"`{inner}`" if inner else ""
    if tag == "a":
        href = node.get("href").strip()
        label = to_inline(node, base_url) or href
        if not href:
            return label
        return f"[{label}]({urljoin(base_url, href)})"
    return to_inline(node, base_url)


def to_inline(el: Element, base_url: str) -> str:
    """Render the children of *el* as single-block inline markdown."""
    return "".join(_render(child, base_url) for child in el.children)


def _list_text(el: Element, base_url: str, ordered: bool) -> str:
    lines: list[str] = []
    items = [c for c in el.element_children() if c.tag == "li"]
    for number, item in enumerate(items, start=1):
        clean = to_inline(item, base_url).strip()
        if clean:
            marker = f"{number}." if ordered else "-"
            lines.append(f"{marker} {clean}")
    return "\n".join(lines)


def to_block(el: Element, base_url: str) -> str:
    """Render a prose block, or ``""`` if the block is filtered out."""
    if is_breadcrumb(el) or is_item_counter(el) or is_heading(el):
        return ""
    if is_within_non_prose(el):
        return ""
    if el.tag == "ul":
        return _list_text(el, base_url, ordered=False)
    if el.tag == "ol":
        return _list_text(el, base_url, ordered=True)
    if el.tag != "p":
        return ""
    text = to_inline(el, base_url).strip()
    if is_metadata_line(text) or is_counter_line(text):
        return ""
    return text
