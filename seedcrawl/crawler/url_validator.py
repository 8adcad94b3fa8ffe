"""
URL structure and SEO-friendliness checks.

The validator never stops at the first finding: every applicable check runs
and the full list of issues is returned. Issues are advisory; the dispatcher
reports them and keeps processing the URL.
"""

import re
from typing import List, Optional
from urllib.parse import urlsplit

from .errors import CrawlError, ParseError, SchemeError, SEOPolicyViolation

MAX_PATH_LENGTH = 100
ALLOWED_SCHEMES = ('http', 'https')

_scheme_pattern = re.compile(r'^([A-Za-z][A-Za-z0-9+.\-]*):')


def _recover_scheme(url: str) -> Optional[str]:
    """Best effort scheme extraction for strings urlsplit rejects."""
    match = _scheme_pattern.match(url)
    return match.group(1).lower() if match else None


def validate_url(url: str) -> List[CrawlError]:
    """
    Check a URL for structural problems and SEO-friendliness.

    Args:
        url: The URL as typed by the user

    Returns:
        List of issues, empty when the URL is clean
    """
    issues: List[CrawlError] = []

    try:
        parsed = urlsplit(url)
        # Accessing the port validates it; urlsplit itself is lazy about it.
        parsed.port
    except ValueError:
        issues.append(ParseError())
        # Only the scheme can be recovered from a string urlsplit rejects;
        # path based checks do not apply.
        if _recover_scheme(url) not in ALLOWED_SCHEMES:
            issues.append(SchemeError())
        return issues

    if parsed.scheme not in ALLOWED_SCHEMES:
        issues.append(SchemeError())

    path = parsed.path

    if len(path) > MAX_PATH_LENGTH:
        issues.append(SEOPolicyViolation(SEOPolicyViolation.PATH_TOO_LONG))

    if parsed.query or parsed.fragment:
        issues.append(SEOPolicyViolation(SEOPolicyViolation.QUERY_OR_FRAGMENT))

    if path != path.lower() or '_' in path:
        issues.append(SEOPolicyViolation(SEOPolicyViolation.UNFRIENDLY_CHARACTERS))

    return issues
