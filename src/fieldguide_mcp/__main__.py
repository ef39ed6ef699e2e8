"""Field Guide MCP Server entry point."""

import asyncio
import json
import sys


async def _page(path: str) -> None:
    """Print the artifact of a guide page (or ``page#section``) as JSON."""
    from fieldguide_mcp.guide import FieldGuide

    guide = FieldGuide.from_settings()
    try:
        artifact = await guide.build_page_artifact(path)
    finally:
        await guide.aclose()
    print(json.dumps(artifact.to_dict(), ensure_ascii=False, indent=2))


async def _search(query: str) -> None:
    """Print search results for *query* as JSON."""
    from fieldguide_mcp.guide import FieldGuide

    guide = FieldGuide.from_settings()
    try:
        results = await guide.search(query, limit=guide.search_limit)
    finally:
        await guide.aclose()
    print(json.dumps([r.to_dict() for r in results], ensure_ascii=False, indent=2))


def _cli() -> None:
    """CLI dispatcher: server (default), page, or search subcommand."""
    from fieldguide_mcp.errors import FieldGuideError

    try:
        if len(sys.argv) >= 3 and sys.argv[1] == "page":
            asyncio.run(_page(sys.argv[2]))
            return
        if len(sys.argv) >= 3 and sys.argv[1] == "search":
            asyncio.run(_search(" ".join(sys.argv[2:])))
            return
    except FieldGuideError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    from fieldguide_mcp.server import main

    main()


if __name__ == "__main__":
    _cli()
