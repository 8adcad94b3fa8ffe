"""
Canonical form of seed URLs used as the dedup key.

URLs are deduplicated by site, not by page: two URLs that differ only in
path, query, fragment, port or a leading "www." share one key.
"""

from typing import NamedTuple, Union
from urllib.parse import urlsplit

from .errors import ParseError

_MIRRORED_SCHEMES = {'http': 'https', 'https': 'http'}


class CanonicalKey(NamedTuple):
    """Scheme plus bare host."""
    scheme: str
    host: str

    def __str__(self) -> str:
        return f"{self.scheme}://{self.host}"


def normalize_url(url: str) -> CanonicalKey:
    """
    Reduce a URL to its canonical key.

    Raises:
        ParseError: if the string is not an absolute URL with a host
    """
    if not url or any(ch.isspace() for ch in url):
        raise ParseError(f"invalid URL {url!r}")

    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
        parsed.port
    except ValueError as e:
        raise ParseError(f"invalid URL {url!r}: {e}") from e

    if not parsed.scheme or not hostname:
        raise ParseError(f"invalid URL {url!r}: missing scheme or host")

    if hostname.startswith('www.'):
        hostname = hostname[len('www.'):]

    return CanonicalKey(parsed.scheme.lower(), hostname.lower())


def toggle_scheme(key: Union[CanonicalKey, str]) -> Union[CanonicalKey, str]:
    """Swap http and https, leaving any other scheme untouched."""
    if isinstance(key, CanonicalKey):
        return key._replace(scheme=_MIRRORED_SCHEMES.get(key.scheme, key.scheme))

    scheme, sep, rest = key.partition('://')
    if not sep:
        return key
    return f"{_MIRRORED_SCHEMES.get(scheme, scheme)}://{rest}"
