"""Typed HTML tree used by the extraction and search code.

BeautifulSoup does the parsing. The parse result is converted into two plain
node types, ``Text`` and ``Element``, so that every filter and renderer is a
pure function over these values and can be exercised on hand-built trees
without fetching a document.

The conversion and all traversals are iterative: guide pages nest deeply
enough in places that recursive walks are not safe.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, NavigableString, Tag

_HEADING_RE = re.compile(r"^h([1-6])$")


@dataclass(slots=True, eq=False)
class Text:
    data: str
    parent: Element | None = field(default=None, repr=False)


@dataclass(slots=True, eq=False)
class Element:
    tag: str
    attrs: dict[str, str] = field(default_factory=dict)
    children: list[Text | Element] = field(default_factory=list)
    parent: Element | None = field(default=None, repr=False)

    def append(self, node: Text | Element) -> Text | Element:
        node.parent = self
        self.children.append(node)
        return node

    def get(self, name: str, default: str = "") -> str:
        return self.attrs.get(name, default)

    @property
    def id(self) -> str:
        return self.attrs.get("id", "")

    @property
    def classes(self) -> list[str]:
        return self.get("class").split()

    def element_children(self) -> list[Element]:
        return [c for c in self.children if isinstance(c, Element)]

    def iter_elements(self) -> Iterator[Element]:
        """Yield all descendant elements in document order."""
        stack = list(reversed(self.element_children()))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.element_children()))

    def find_all(self, *tags: str) -> list[Element]:
        wanted = set(tags)
        return [e for e in self.iter_elements() if e.tag in wanted]

    def find_first(self, *tags: str) -> Element | None:
        wanted = set(tags)
        return next((e for e in self.iter_elements() if e.tag in wanted), None)

    def find_by_id(self, element_id: str) -> Element | None:
        if not element_id:
            return None
        return next((e for e in self.iter_elements() if e.id == element_id), None)

    def text(self) -> str:
        """Concatenated text of every descendant text node."""
        parts: list[str] = []
        stack: list[Text | Element] = list(reversed(self.children))
        while stack:
            node = stack.pop()
            if isinstance(node, Text):
                parts.append(node.data)
            else:
                stack.extend(reversed(node.children))
        return "".join(parts)

    def ancestors(self) -> Iterator[Element]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def closest(self, predicate: Callable[[Element], bool]) -> Element | None:
        """First of self and its ancestors matching *predicate*."""
        if predicate(self):
            return self
        return next((a for a in self.ancestors() if predicate(a)), None)

    def contains(self, node: Text | Element) -> bool:
        parent = node.parent
        while parent is not None:
            if parent is self:
                return True
            parent = parent.parent
        return False

    def next_element_siblings(self) -> Iterator[Element]:
        if self.parent is None:
            return
        siblings = self.parent.children
        index = next(i for i, c in enumerate(siblings) if c is self)
        for sibling in siblings[index + 1 :]:
            if isinstance(sibling, Element):
                yield sibling


Node = Text | Element


def heading_level(node: Node) -> int | None:
    """Numeric level of an ``h1``..``h6`` element, else None."""
    if not isinstance(node, Element):
        return None
    match = _HEADING_RE.match(node.tag)
    return int(match.group(1)) if match else None


def el(tag: str, *children: Node | str, **attrs: str) -> Element:
    """Build an element by hand.

    Keyword names map to attributes with a trailing underscore dropped and
    inner underscores turned into dashes (``class_``, ``aria_label``).
    """
    element = Element(
        tag, {name.rstrip("_").replace("_", "-"): value for name, value in attrs.items()}
    )
    for child in children:
        element.append(Text(child) if isinstance(child, str) else child)
    return element


def _convert_attrs(tag: Tag) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for name, value in tag.attrs.items():
        if isinstance(value, list):
            value = " ".join(value)
        attrs[name.lower()] = str(value)
    return attrs


def parse_html(html: str) -> Element:
    """Parse *html* into a typed tree rooted at a ``#document`` element.

    Only plain text survives as ``Text``; comments, doctypes and the string
    contents of script/style/template are dropped.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    root = Element("#document")
    stack: list[tuple[Tag, Element]] = [(soup, root)]
    while stack:
        source, target = stack.pop()
        for child in source.children:
            if isinstance(child, Tag):
                if child.name.lower() in ("script", "style", "template"):
                    continue
                node = Element(child.name.lower(), _convert_attrs(child))
                target.append(node)
                stack.append((child, node))
            elif type(child) is NavigableString:
                target.append(Text(str(child)))
    return root
