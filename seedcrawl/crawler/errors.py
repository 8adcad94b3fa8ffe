"""
Error types shared by the validator, normalizer, fetch timer and dispatcher.
"""

from typing import Optional


class CrawlError(Exception):
    """Structured error carrying a human readable message and a numeric code."""

    default_message = "crawl error"
    default_code = 0

    def __init__(self, message: Optional[str] = None, code: Optional[int] = None):
        self.message = message if message is not None else self.default_message
        self.code = code if code is not None else self.default_code
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"Error: {self.message} (Code: {self.code})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, code={self.code})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, CrawlError):
            return NotImplemented
        return (type(self), self.message, self.code) == (type(other), other.message, other.code)

    def __hash__(self) -> int:
        return hash((type(self), self.message, self.code))


class ParseError(CrawlError):
    """The input string is not a syntactically valid URL."""

    default_message = "parsing error"
    default_code = 500


class SchemeError(CrawlError):
    """The URL scheme is neither http nor https."""

    default_message = "unsupported scheme"
    default_code = 400


class SEOPolicyViolation(CrawlError):
    """Advisory SEO lint finding. Never blocks processing."""

    PATH_TOO_LONG = "path too long (SEO)"
    QUERY_OR_FRAGMENT = "query/fragment present (SEO)"
    UNFRIENDLY_CHARACTERS = "non-SEO-friendly characters"

    default_message = "SEO policy violation"
    default_code = 199


class NetworkError(CrawlError):
    """Transport level failure (connection refused, DNS, timeout...)."""

    default_message = "network error"
    default_code = 0


class HTTPStatusError(CrawlError):
    """The server answered with a status other than 200."""

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        super().__init__(message or f"got HTTP status code {status}", status)


# Issues returned by the validator are plain CrawlError instances.
ValidationIssue = CrawlError
