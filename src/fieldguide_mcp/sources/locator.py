"""Guide addresses: locale-qualified canonical URLs and fragment handling.

The guide mixes directory-style links (``mechanics/crops/``), file-style
links (``mechanics/crops.html``) and several locale prefixes. Everything that
needs a page identity goes through ``Locator.canonical`` so that the same page
always maps to the same string.

Index rule, in order, applied to the last path segment:
- empty (trailing slash)   -> ``.../index.html``
- literally ``index``      -> ``.../index.html``
- no ``.`` in the segment  -> ``.../<segment>/index.html``
- anything else            -> unchanged
"""

import re
import unicodedata
from urllib.parse import urlsplit, urlunsplit

from fieldguide_mcp.errors import LocatorError
from fieldguide_mcp.locales import DEFAULT_LANG, LANGS
from fieldguide_mcp.models import Location

# Fragments containing these substrings are UI widgets, never prose.
FRAGMENT_DENYLIST: tuple[str, ...] = (
    "glb-viewer",
    "nav-primary",
    "navbar-content",
    "lang-dropdown-button",
    "bd-theme",
    "bd-theme-text",
)

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


def is_denylisted(id_or_url: str | None) -> bool:
    """True if the fragment (or bare id) contains a denylisted substring."""
    if not id_or_url:
        return False
    candidate = id_or_url.rsplit("#", 1)[-1].lower()
    return any(sub in candidate for sub in FRAGMENT_DENYLIST)


def is_denylisted_fragment(url: str | None) -> bool:
    """Like ``is_denylisted`` but only for URLs that carry a fragment."""
    return bool(url) and "#" in url and is_denylisted(url)


def normalize_id(value: str | None) -> str:
    """Lowercase, strip diacritics, collapse non-alphanumerics to ``_``."""
    text = unicodedata.normalize("NFKD", (value or "").lower())
    text = "".join(c for c in text if not unicodedata.combining(c))
    return re.sub(r"[^a-z0-9]+", "_", text).strip("_")


def has_token(haystack: str | None, needle: str | None) -> bool:
    """Underscore-aligned containment of *needle* in *haystack*.

    ``has_token("Blast Furnace", "blast")`` is true,
    ``has_token("blastfurnace", "blast")`` is not.
    """
    norm_needle = normalize_id(needle)
    if not norm_needle:
        return False
    pattern = rf"(?:^|_){re.escape(norm_needle)}(?:_|$)"
    return re.search(pattern, normalize_id(haystack)) is not None


def path_matches(rel_path: str, token: str) -> bool:
    """Whether the file name (sans ``.html``) or fragment of *rel_path* has *token*."""
    path_part, _, fragment = rel_path.partition("#")
    segments = [s for s in path_part.split("/") if s]
    filename = segments[-1] if segments else path_part
    stem = re.sub(r"\.html$", "", filename, flags=re.IGNORECASE)
    if has_token(stem, token):
        return True
    return bool(fragment) and has_token(fragment, token)


class Locator:
    """Resolves user paths and URLs against one content base."""

    def __init__(
        self,
        base_url: str,
        default_lang: str = DEFAULT_LANG,
        langs: tuple[str, ...] = LANGS,
    ):
        base_url = base_url.strip()
        if not base_url.endswith("/"):
            base_url += "/"
        parsed = urlsplit(base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise LocatorError(f"Content base must be an http(s) URL: {base_url}")

        self.base_url = base_url
        self.langs = tuple(langs)
        self.default_lang = default_lang if default_lang in self.langs else self.langs[0]
        self._netloc = parsed.netloc.lower()
        self._base_segments = [s for s in parsed.path.split("/") if s]

    @property
    def content_root(self) -> str:
        return self._base_segments[-1] if self._base_segments else ""

    def lang_or_default(self, lang: str | None) -> str:
        if lang and lang.lower() in self.langs:
            return lang.lower()
        return self.default_lang

    def locale_base(self, lang: str | None = None) -> str:
        return f"{self.base_url}{self.lang_or_default(lang)}/"

    def is_internal(self, url: str, lang: str | None = None) -> bool:
        """True if *url* lives under the locale base of *lang*."""
        return url.startswith(self.locale_base(lang))

    def relative(self, url: str) -> str:
        """Path of *url* relative to the content base (``en_us/...``)."""
        if url.startswith(self.base_url):
            return url[len(self.base_url) :]
        return url

    # ------------------------------------------------------------------
    # Canonicalization
    # ------------------------------------------------------------------

    def _locale_index(self, parts: list[str]) -> int | None:
        """Index in *parts* where the locale segment belongs, if under the base."""
        n = len(self._base_segments)
        if parts[1 : 1 + n] != self._base_segments:
            return None
        return 1 + n

    def _under_base(self, path: str) -> bool:
        return self._locale_index(path.split("/")) is not None

    def locale_in(self, url: str) -> str | None:
        """The known locale segment of *url*, if it has one after the base."""
        parsed = urlsplit(url)
        if parsed.netloc.lower() != self._netloc:
            return None
        parts = parsed.path.split("/")
        index = self._locale_index(parts)
        if index is None or index >= len(parts):
            return None
        return parts[index] if parts[index] in self.langs else None

    def ensure_locale(self, url: str, lang: str | None = None) -> str:
        """Make the segment after the content root the locale *lang*."""
        parsed = urlsplit(url)
        if parsed.netloc.lower() != self._netloc:
            return url
        parts = parsed.path.split("/")
        index = self._locale_index(parts)
        if index is None:
            return url
        wanted = self.lang_or_default(lang)
        if index < len(parts) and parts[index] in self.langs:
            parts[index] = wanted
        elif index < len(parts):
            parts.insert(index, wanted)
        else:
            parts.append(wanted)
        return urlunsplit(parsed._replace(path="/".join(parts)))

    def canonical(self, url: str, lang: str | None = None) -> str:
        """Locale-qualified, extension-complete, fragment-free page URL."""
        parsed = urlsplit(self.ensure_locale(url, lang))
        path = parsed.path or "/"
        last = path.rsplit("/", 1)[-1]
        if not last:
            path += "index.html"
        elif last == "index":
            path += ".html"
        elif "." not in last:
            path += "/index.html"
        return urlunsplit((parsed.scheme, parsed.netloc, path, parsed.query, ""))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, path_or_url: str, lang: str | None = None) -> Location:
        """Turn a relative guide path or absolute URL into a ``Location``.

        The fragment is returned separately and never part of the canonical
        URL. A locale already present in the input wins over *lang*.
        Absolute URLs must point into the content base.
        """
        if not isinstance(path_or_url, str) or not path_or_url.strip():
            raise LocatorError("A guide path or URL is required")
        raw = path_or_url.strip()

        if _SCHEME_RE.match(raw):
            parsed = urlsplit(raw)
            if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
                raise LocatorError(f"Unsupported URL: {raw}")
            if parsed.netloc.lower() != self._netloc or not self._under_base(parsed.path):
                raise LocatorError(f"URL is outside the guide at {self.base_url}: {raw}")
            use_lang = self.locale_in(raw) or self.lang_or_default(lang)
            canonical = self.canonical(
                urlunsplit(parsed._replace(fragment="")), use_lang
            )
            return Location(canonical, parsed.fragment or None, use_lang)

        path, _, fragment = raw.partition("#")
        path = path.strip("/")
        if ".." in path.split("/"):
            raise LocatorError(f"Path leaves the guide: {raw}")
        use_lang = self.lang_or_default(lang)
        head, _, rest = path.partition("/")
        if head in self.langs:
            use_lang = head
            path = rest.strip("/")
        if path and not path.endswith(".html"):
            path += ".html"
        canonical = self.canonical(f"{self.locale_base(use_lang)}{path}", use_lang)
        return Location(canonical, fragment or None, use_lang)

    def build_url(self, path_or_url: str, lang: str | None = None) -> str:
        """Canonical URL with the fragment re-attached."""
        return self.resolve(path_or_url, lang).url
