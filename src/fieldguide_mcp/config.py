"""Configuration settings for the Field Guide MCP server."""

from pydantic_settings import BaseSettings

from fieldguide_mcp.locales import safe_lang


class Settings(BaseSettings):
    """Field Guide MCP Server configuration.

    Environment variables:
    - CONTENT_BASE: Root URL of the guide, without locale
        (default: https://terrafirmagreg-team.github.io/Field-Guide-Modern/)
    - DEFAULT_LANG: Locale used when a request names none (default: en_us)
    - SEARCH_INDEX_URL: Override for the precomputed search_index.json URL
    - FETCH_TIMEOUT: Per-request HTTP timeout in seconds (default: 15)
    - INDEX_TTL: Seconds a fetched search index stays fresh (default: 600)
    - SESSION_TTL: Seconds a paged result session lives (default: 900)
    - SESSION_MAX: Maximum live sessions before the oldest are evicted
    - SEARCH_LIMIT: Results per search from tools and the CLI (default: 250)
    - CRAWL_MAX_PAGES: Page budget of the fallback crawl (default: 800)
    - CRAWL_LIMIT: Crawl matches when a caller gives no limit (default: 25)
    - TOOL_TIMEOUT: Hard timeout per MCP tool call (0 = none)
    """

    # Content source
    content_base: str = "https://terrafirmagreg-team.github.io/Field-Guide-Modern/"
    default_lang: str = "en_us"
    search_index_url: str = ""  # Default: <content_base><lang>/search_index.json
    user_agent: str = "fieldguide-mcp/1.0"

    # HTTP
    fetch_timeout: float = 15.0

    # Search
    index_ttl: int = 600  # 10 minutes
    search_limit: int = 250
    crawl_max_pages: int = 800
    crawl_limit: int = 25

    # Rendering
    description_limit: int = 4096

    # Result sessions
    session_ttl: int = 900  # 15 minutes
    session_max: int = 1000
    session_sweep_interval: int = 60  # seconds, 0 = sweep on create only

    # Tool execution timeout (seconds, 0 = no timeout)
    tool_timeout: int = 120

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "", "case_sensitive": False}

    def get_content_base(self) -> str:
        """Content base URL, always ending with a slash."""
        base = self.content_base.strip()
        return base if base.endswith("/") else base + "/"

    def resolve_lang(self, lang: str | None = None) -> str:
        """Pick the requested locale, then DEFAULT_LANG, falling back to en_us."""
        return safe_lang(lang or self.default_lang)


settings = Settings()
