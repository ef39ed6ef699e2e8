"""Short-lived result sessions for paging through search results.

A search stores its full ranked result list under a random token; later calls
page through it with that token. Sessions expire after a fixed TTL and are
swept periodically; the store is also capped in size, evicting the oldest
sessions first.
"""

import math
import secrets
import time
from collections.abc import Callable, Iterable

from loguru import logger

from fieldguide_mcp.errors import SessionExpired
from fieldguide_mcp.models import SearchResult, SearchSession, SelectOption
from fieldguide_mcp.sources.locator import Locator, is_denylisted_fragment

SESSION_TTL = 900  # 15 minutes
MAX_SESSIONS = 1000
PAGE_SIZE = 25
OPTION_LIMIT = 100

# Sweep expired sessions every N creations
_SWEEP_INTERVAL = 50


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, math.ceil(count / page_size))


def paginate(
    results: Iterable[SearchResult], page_number: int, page_size: int = PAGE_SIZE
) -> list[SearchResult]:
    """One page of *results*; denylisted fragments are dropped, not replaced."""
    items = list(results)
    start = (max(1, page_number) - 1) * page_size
    return [r for r in items[start : start + page_size] if not is_denylisted_fragment(r.url)]


def select_options(
    results: Iterable[SearchResult], locator: Locator
) -> list[SelectOption]:
    """Menu entries for a page of results.

    Values are paths relative to the content base. A value that would not fit
    in 100 characters is left out entirely rather than truncated.
    """
    options: list[SelectOption] = []
    for result in results:
        rel_path = locator.relative(result.url)
        if len(rel_path) > OPTION_LIMIT:
            continue
        options.append(
            SelectOption(
                label=(result.title or "Result")[:OPTION_LIMIT],
                value=rel_path,
                description=rel_path[:OPTION_LIMIT],
            )
        )
    return options


class SessionStore:
    """In-memory token -> ``SearchSession`` map with TTL and size cap."""

    def __init__(
        self,
        ttl: int = SESSION_TTL,
        max_sessions: int = MAX_SESSIONS,
        clock: Callable[[], float] = time.time,
        sweep_every: int = _SWEEP_INTERVAL,
    ):
        self._ttl = ttl
        self._max = max(1, max_sessions)
        self._clock = clock
        self._sweep_every = max(1, sweep_every)
        self._op_count = 0
        # insertion order == creation order, used for eviction
        self._sessions: dict[str, SearchSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, token: object) -> bool:
        return token in self._sessions

    def create(self, results: Iterable[SearchResult], query: str = "") -> str:
        """Store *results* and return the new session token."""
        self._op_count += 1
        if self._op_count % self._sweep_every == 0:
            self.sweep()

        while len(self._sessions) >= self._max:
            oldest = next(iter(self._sessions))
            del self._sessions[oldest]
            logger.debug(f"Evicted session {oldest[:8]}... (store full)")

        token = secrets.token_urlsafe(16)
        while token in self._sessions:
            token = secrets.token_urlsafe(16)
        self._sessions[token] = SearchSession(
            token=token,
            query=query,
            results=tuple(results),
            expires_at=self._clock() + self._ttl,
        )
        return token

    def get(self, token: str | None) -> SearchSession | None:
        """The live session for *token*; an expired one is removed."""
        if not token:
            return None
        session = self._sessions.get(token)
        if session is None:
            return None
        if self._clock() >= session.expires_at:
            del self._sessions[token]
            return None
        return session

    def require(self, token: str | None) -> SearchSession:
        session = self.get(token)
        if session is None:
            raise SessionExpired(token or "")
        return session

    def sweep(self) -> int:
        """Drop every expired session. Returns the number removed."""
        now = self._clock()
        expired = [t for t, s in self._sessions.items() if now >= s.expires_at]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.debug(f"Swept {len(expired)} expired sessions")
        return len(expired)

    def page(
        self, session: SearchSession, page_number: int, page_size: int = PAGE_SIZE
    ) -> list[SearchResult]:
        return paginate(session.results, page_number, page_size)

    def total_pages(self, session: SearchSession, page_size: int = PAGE_SIZE) -> int:
        return total_pages(len(session.results), page_size)
