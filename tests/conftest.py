"""Pytest configuration and fixtures."""

import httpx
import pytest

from fieldguide_mcp.errors import FetchError
from fieldguide_mcp.sources.extract import Page
from fieldguide_mcp.sources.locator import Locator

BASE = "https://guide.test/Field-Guide-Modern/"
EN = f"{BASE}en_us/"
CROPS_URL = f"{EN}mechanics/crops.html"

CROPS_HTML = """<!DOCTYPE html>
<html>
<head><title>Crops | Field Guide</title><script>var x = "<p>not prose</p>";</script></head>
<body>
<nav class="navbar" id="nav-primary"><a href="../index.html">Home</a></nav>
<div class="container"><div class="row">
<div class="col-md-3"><ul><li><a href="firmalife.html">Firmalife</a></li></ul></div>
<div class="col-md-9">
<nav aria-label="breadcrumb"><ol class="breadcrumb"><li>Home</li><li>Mechanics</li></ol></nav>
<h1 id="crops">Crops</h1>
<p>Crops are plants that can be <strong>farmed</strong> for food.</p>
<p>Recipe: minecraft:wheat</p>
<img src="../_images/crops.png" alt="crops">
<h2 id="planting">Planting</h2>
<p>Plant <em>seeds</em> on farmland. See <a href="../the_world/geology.html">Geology</a>.</p>
<ul><li>Wheat</li><li>Rice</li></ul>
<h3 id="nutrients">Nutrients</h3>
<p>Each crop consumes one of <code>N</code>, <code>P</code> or <code>K</code>.</p>
<div class="crafting-recipe"><p>Seeds</p><div class="crafting-recipe-item-count">2</div></div>
<h2 id="harvesting">Harvesting</h2>
<p>Break the crop when it is fully grown.</p>
<ol><li>Wait</li><li>Harvest</li></ol>
<div id="bd-theme-text">Toggle theme</div>
</div>
</div></div>
</body>
</html>
"""


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def site_transport(pages: dict[str, str | tuple[int, str]], requests: list | None = None):
    """MockTransport serving *pages* by exact URL; anything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        entry = pages.get(str(request.url))
        if entry is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(entry, tuple):
            status, body = entry
            return httpx.Response(status, text=body)
        return httpx.Response(200, text=entry)

    return httpx.MockTransport(handler)


def fake_fetch(pages: dict[str, str], calls: list[str]):
    """Crawl fetcher backed by a dict; unknown URLs raise FetchError."""

    async def fetch(url: str) -> str:
        calls.append(url)
        if url not in pages:
            raise FetchError(url, "HTTP 404")
        return pages[url]

    return fetch


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def locator():
    return Locator(BASE)


@pytest.fixture
def crops_page():
    return Page.parse(CROPS_URL, CROPS_HTML)
