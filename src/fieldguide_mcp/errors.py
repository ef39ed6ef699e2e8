"""Exceptions raised by the Field Guide engine."""


class FieldGuideError(Exception):
    """Base class for all Field Guide errors."""


class FetchError(FieldGuideError):
    """A page or index could not be retrieved (transport, timeout, non-2xx)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class IndexFormatError(FieldGuideError):
    """The precomputed search index is not a JSON array of records."""


class LocatorError(FieldGuideError):
    """A path or URL could not be turned into a guide address."""


class SessionExpired(FieldGuideError):
    """The pagination token is unknown or past its expiry."""

    def __init__(self, token: str):
        self.token = token
        super().__init__("This search session expired.")
