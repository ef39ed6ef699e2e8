"""Search over the guide's precomputed ``search_index.json``.

The index is a JSON array of ``{"entry", "content", "url"}`` rows published
next to each locale. It is fetched lazily and kept in memory per locale for a
fixed TTL. Refreshes are not locked: concurrent callers past the TTL may each
refetch, and the last one to finish wins.
"""

import json
import re
import time
from collections.abc import Callable

import httpx
from loguru import logger

from fieldguide_mcp.errors import IndexFormatError, LocatorError
from fieldguide_mcp.models import CachedIndex, IndexRecord, ScoredMatch, SearchResult
from fieldguide_mcp.sources.fetcher import DEFAULT_TIMEOUT, fetch_text
from fieldguide_mcp.sources.locator import Locator

INDEX_TTL = 600  # 10 minutes
DEFAULT_LIMIT = 250
MAX_LIMIT = 500
DEFAULT_TITLE = "Field Guide"

TITLE_SCORE = 4
CONTENT_SCORE = 2
PREFIX_BONUS = 1

_SEPARATORS_RE = re.compile(r"[_#./-]+")
_PUNCT_RE = re.compile(r"[^\w\s]")


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def tokenize(query: str | None) -> list[str]:
    """Lowercase query words with path separators and punctuation removed."""
    text = _SEPARATORS_RE.sub(" ", (query or "").lower())
    text = _PUNCT_RE.sub("", text)
    return text.split()


def has_standalone_term(text: str | None, term: str) -> bool:
    """True if *term* occurs in *text* bounded by non-alphanumerics or edges."""
    if not text or not term:
        return False
    pattern = rf"(?:^|[\W_]){re.escape(term)}(?:[\W_]|$)"
    return re.search(pattern, text, re.IGNORECASE) is not None


def _starts_with_term(text: str, term: str) -> bool:
    return re.match(rf"{re.escape(term)}(?:[\W_]|$)", text, re.IGNORECASE) is not None


def score_record(record: IndexRecord, terms: list[str]) -> int:
    score = 0
    for term in terms:
        if has_standalone_term(record.title, term):
            score += TITLE_SCORE
        if has_standalone_term(record.content, term):
            score += CONTENT_SCORE
        if _starts_with_term(record.title, term):
            score += PREFIX_BONUS
    return score


def rank_records(
    records: list[IndexRecord],
    terms: list[str],
    limit: int = DEFAULT_LIMIT,
    resolve_url: Callable[[str], str] = lambda url: url,
) -> list[SearchResult]:
    """Score, sort (stable) and de-duplicate *records* by resolved URL.

    A record whose URL cannot be resolved is dropped.
    """
    if not terms:
        return []

    matches: list[ScoredMatch] = []
    for record in records:
        score = score_record(record, terms)
        if score > 0:
            matches.append(ScoredMatch(score=score, title=record.title, url=record.url))
    matches.sort(key=lambda m: -m.score)

    cap = min(max(limit, 1), MAX_LIMIT)
    results: list[SearchResult] = []
    seen: set[str] = set()
    for match in matches:
        try:
            url = resolve_url(match.url)
        except LocatorError as e:
            logger.warning(f"Dropped search index row '{match.title}': {e}")
            continue
        if url in seen:
            continue
        seen.add(url)
        results.append(SearchResult(title=match.title, url=url))
        if len(results) >= cap:
            break
    return results


# ---------------------------------------------------------------------------
# Index loading
# ---------------------------------------------------------------------------


def parse_index(payload: object) -> list[IndexRecord]:
    """Validate a decoded ``search_index.json`` payload.

    Raises:
        IndexFormatError: if *payload* is not a list.
    """
    if not isinstance(payload, list):
        raise IndexFormatError(
            f"Search index must be a JSON array, got {type(payload).__name__}"
        )

    records: list[IndexRecord] = []
    skipped = 0
    for row in payload:
        url = row.get("url") if isinstance(row, dict) else None
        if not isinstance(url, str) or not url.strip():
            skipped += 1
            continue
        title = row.get("entry")
        content = row.get("content")
        records.append(
            IndexRecord(
                title=title if isinstance(title, str) and title else DEFAULT_TITLE,
                content=content if isinstance(content, str) else None,
                url=url.strip(),
            )
        )
    if skipped:
        logger.warning(f"Skipped {skipped} malformed search index rows")
    return records


class SearchIndexCache:
    """Per-locale in-memory cache of the search index."""

    def __init__(
        self,
        client: httpx.AsyncClient | None,
        locator: Locator,
        ttl: int = INDEX_TTL,
        clock: Callable[[], float] = time.time,
        index_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._client = client
        self._locator = locator
        self._ttl = ttl
        self._clock = clock
        self._index_url = index_url or ""
        self._timeout = timeout
        self._entries: dict[str, CachedIndex] = {}

    def index_url(self, lang: str | None = None) -> str:
        if self._index_url:
            return self._index_url
        return f"{self._locator.locale_base(lang)}search_index.json"

    def clear(self) -> None:
        self._entries.clear()

    async def records(self, lang: str | None = None) -> list[IndexRecord]:
        """Cached records for *lang*, refetched once older than the TTL.

        Raises:
            FetchError: the index could not be retrieved.
            IndexFormatError: the body is not a JSON array.
        """
        lang = self._locator.lang_or_default(lang)
        now = self._clock()
        entry = self._entries.get(lang)
        if entry is not None and now - entry.fetched_at < self._ttl:
            logger.debug(f"Index cache HIT ({lang})")
            return entry.records

        url = self.index_url(lang)
        logger.debug(f"Index cache MISS ({lang}), fetching {url}")
        body = await fetch_text(
            url,
            client=self._client,
            timeout=self._timeout,
            headers={"Cache-Control": "no-cache"},
        )
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise IndexFormatError(f"Search index at {url} is not valid JSON: {e}") from e

        records = parse_index(payload)
        self._entries[lang] = CachedIndex(records=records, fetched_at=self._clock())
        logger.info(f"Loaded {len(records)} search index records for {lang}")
        return records


async def search_via_index(
    query: str,
    cache: SearchIndexCache,
    locator: Locator,
    limit: int = DEFAULT_LIMIT,
    lang: str | None = None,
) -> list[SearchResult]:
    """Ranked index hits for *query* with canonical, locale-qualified URLs."""
    terms = tokenize(query)
    if not terms:
        return []
    lang = locator.lang_or_default(lang)
    records = await cache.records(lang)
    return rank_records(
        records, terms, limit, resolve_url=lambda url: locator.build_url(url, lang)
    )
