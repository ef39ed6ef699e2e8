"""Core Field Guide data records."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class IndexRecord:
    """One row of the precomputed ``search_index.json``."""

    title: str
    content: str | None
    url: str


@dataclass(slots=True, frozen=True)
class CachedIndex:
    """Parsed index rows of one locale and when they were fetched."""

    records: list[IndexRecord]
    fetched_at: float


@dataclass(slots=True)
class ScoredMatch:
    score: int
    title: str
    url: str


@dataclass(slots=True, frozen=True)
class SearchResult:
    """Public result shape. ``url`` is always absolute and canonical."""

    title: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "url": self.url}


@dataclass(slots=True)
class Section:
    title: str
    description: str
    image: str | None = None


@dataclass(slots=True, frozen=True)
class TocItem:
    title: str
    url: str

    def to_line(self) -> str:
        return f"- [{self.title}]({self.url})"


@dataclass(slots=True)
class PageArtifact:
    """Renderable summary of a page or of one of its sections."""

    title: str
    url: str
    description: str
    image: str | None = None
    toc_items: list[TocItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "image": self.image,
            "toc": [{"title": t.title, "url": t.url} for t in self.toc_items],
        }


@dataclass(slots=True, frozen=True)
class Location:
    """A resolved page address plus the in-page fragment, kept apart."""

    canonical_url: str
    fragment: str | None
    lang: str

    @property
    def url(self) -> str:
        if self.fragment:
            return f"{self.canonical_url}#{self.fragment}"
        return self.canonical_url


@dataclass(slots=True, frozen=True)
class SearchSession:
    token: str
    query: str
    results: tuple[SearchResult, ...]
    expires_at: float


@dataclass(slots=True, frozen=True)
class SelectOption:
    """One selectable entry of a paged result menu."""

    label: str
    value: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return {
            "label": self.label,
            "value": self.value,
            "description": self.description,
        }
