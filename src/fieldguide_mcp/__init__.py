"""Field Guide MCP Server - TerraFirmaGreg Field Guide lookup and search."""

from importlib.metadata import version

from fieldguide_mcp.__main__ import _cli as main
from fieldguide_mcp.server import mcp

__version__ = version("fieldguide-mcp")
__all__ = ["mcp", "main", "__version__"]
