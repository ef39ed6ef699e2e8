"""Field Guide MCP Server - Main server definition."""

import asyncio
import functools
import json
import sys
from contextlib import asynccontextmanager

from loguru import logger
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from fieldguide_mcp.config import settings
from fieldguide_mcp.errors import FetchError, LocatorError, SessionExpired
from fieldguide_mcp.guide import FieldGuide
from fieldguide_mcp.locales import language_choices
from fieldguide_mcp.models import SearchSession
from fieldguide_mcp.security import wrap_external_content
from fieldguide_mcp.sessions import select_options

# Configure logging
logger.remove()
logger.add(sys.stderr, level=settings.log_level)

FETCH_FAILED = "Error: Failed to fetch that page."
SESSION_EXPIRED = "Error: This search session expired."
NOT_READY = "Error: Field Guide engine is not initialized."

# Module-level state (set during lifespan)
_guide: FieldGuide | None = None


async def _sweep_sessions(guide: FieldGuide, interval: int) -> None:
    """Periodically drop expired result sessions."""
    while True:
        await asyncio.sleep(interval)
        removed = guide.sessions.sweep()
        if removed:
            logger.debug(f"Session sweep removed {removed} sessions")


@asynccontextmanager
async def _lifespan(_server: FastMCP):
    """Server lifespan: build the engine, start the session sweeper, clean up."""
    global _guide

    logger.info("Starting Field Guide MCP Server...")
    _guide = FieldGuide.from_settings(settings)
    logger.info(
        f"Content base {_guide.locator.base_url} (default locale {_guide.locator.default_lang})"
    )

    sweep_task: asyncio.Task | None = None
    if settings.session_sweep_interval > 0:
        sweep_task = asyncio.create_task(
            _sweep_sessions(_guide, settings.session_sweep_interval)
        )

    yield

    logger.info("Shutting down Field Guide MCP Server...")

    if sweep_task and not sweep_task.done():
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass

    await _guide.aclose()
    _guide = None


# Initialize MCP server
mcp = FastMCP(
    name="fieldguide",
    instructions=(
        "TerraFirmaGreg Field Guide MCP Server. "
        "Use `search` to find guide pages and sections by keyword, then "
        "`search` with action='page' and the returned token to page through "
        "results. Use `guide` to read a page or a single #section."
    ),
    lifespan=_lifespan,
)


def _wrap_tool(tool_name: str):
    """Decorator to wrap tool results with safety markers.

    Guide content is community-edited, so it is encapsulated in boundary tags
    with a notice to treat it as data only. Error responses pass through.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            result = await func(*args, **kwargs)
            return wrap_external_content(tool_name, result)

        return wrapper

    return decorator


async def _with_timeout(coro, action: str) -> str:
    """Wrap coroutine with a hard timeout (``TOOL_TIMEOUT``, 0 = none)."""
    timeout = settings.tool_timeout
    if timeout <= 0:
        return await coro

    task = asyncio.create_task(coro)
    done, _pending = await asyncio.wait({task}, timeout=timeout)

    if done:
        # Propagate any exception raised by the task
        return task.result()

    task.cancel()
    logger.error(f"Tool '{action}' timed out after {timeout}s")
    return (
        f"Error: '{action}' timed out after {timeout}s. "
        "Increase TOOL_TIMEOUT or try a narrower query."
    )


def _dumps(data) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2)


# ---------------------------------------------------------------------------
# guide tool: page, title, top, languages
# ---------------------------------------------------------------------------


async def _do_page(path: str, lang: str | None) -> str:
    try:
        artifact = await _guide.build_page_artifact(path, lang)
    except LocatorError as e:
        return f"Error: {e}"
    except FetchError as e:
        logger.warning(f"Page lookup failed: {e}")
        return FETCH_FAILED
    return _dumps(artifact.to_dict())


async def _do_title(path: str, lang: str | None) -> str:
    try:
        result = await _guide.fetch_page_title(path, lang)
    except LocatorError as e:
        return f"Error: {e}"
    return _dumps(result.to_dict())


@mcp.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        openWorldHint=True,
        idempotentHint=True,
    ),
)
@_wrap_tool("guide")
async def guide(
    action: str,
    path: str | None = None,
    lang: str | None = None,
) -> str:
    """Read the TerraFirmaGreg Field Guide.
    - page: Summary and table of contents of a page, or one section when path has #fragment (requires path)
    - title: Title of a page (requires path)
    - top: Curated entry pages
    - languages: Available guide locales
    Paths are relative to the locale (e.g. "mechanics/crops") or full guide URLs.
    """
    if _guide is None and action != "languages":
        return NOT_READY

    match action:
        case "page":
            if not path:
                return "Error: path is required for page action"
            return await _with_timeout(_do_page(path, lang), "guide.page")

        case "title":
            if not path:
                return "Error: path is required for title action"
            return await _with_timeout(_do_title(path, lang), "guide.title")

        case "top":
            links = _guide.top_links(lang)
            return _dumps([link.to_dict() for link in links])

        case "languages":
            return _dumps(language_choices())

        case _:
            return (
                f"Error: Unknown action '{action}'. "
                "Valid actions: page, title, top, languages"
            )


# ---------------------------------------------------------------------------
# search tool: search, page
# ---------------------------------------------------------------------------


def _render_results_page(engine: FieldGuide, session: SearchSession, page: int) -> str:
    total = engine.sessions.total_pages(session)
    page = min(max(1, page), total)
    items = engine.sessions.page(session, page)
    return _dumps(
        {
            "query": session.query,
            "token": session.token,
            "page": page,
            "total_pages": total,
            "total_results": len(session.results),
            "results": [r.to_dict() for r in items],
            "options": [o.to_dict() for o in select_options(items, engine.locator)],
        }
    )


async def _do_search(query: str, lang: str | None, limit: int) -> str:
    results = await _guide.search(query, limit=limit, lang=lang)
    if not results:
        return f"No Field Guide pages matched '{query}'."
    token = _guide.sessions.create(results, query)
    return _render_results_page(_guide, _guide.sessions.require(token), 1)


@mcp.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        openWorldHint=True,
        idempotentHint=False,
    ),
)
@_wrap_tool("search")
async def search(
    action: str,
    query: str | None = None,
    token: str | None = None,
    page: int = 1,
    lang: str | None = None,
    limit: int | None = None,
) -> str:
    """Search the Field Guide.
    - search: Keyword search over page titles, sections and content (requires query). Returns page 1 and a token.
    - page: Another page of a previous search, 25 results per page (requires token + page). Tokens expire after 15 minutes.
    limit caps the number of results (default: SEARCH_LIMIT, 250).
    """
    if _guide is None:
        return NOT_READY

    match action:
        case "search":
            if not query or not query.strip():
                return "Error: query is required for search action"
            limit = limit or _guide.search_limit
            return await _with_timeout(_do_search(query.strip(), lang, limit), "search")

        case "page":
            if not token:
                return "Error: token is required for page action"
            try:
                session = _guide.sessions.require(token)
            except SessionExpired:
                return SESSION_EXPIRED
            return _render_results_page(_guide, session, page)

        case _:
            return f"Error: Unknown action '{action}'. Valid actions: search, page"


@mcp.prompt()
def find_in_guide(topic: str) -> str:
    """Generate a prompt to look a topic up in the Field Guide."""
    return (
        f"Find what the TerraFirmaGreg Field Guide says about '{topic}'.\n\n"
        f"Use the search tool with action='search', query='{topic}'. Then use "
        "the guide tool with action='page' on the most relevant result URL "
        "and summarize it, citing the URL."
    )


def main() -> None:
    """Entry point for the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
