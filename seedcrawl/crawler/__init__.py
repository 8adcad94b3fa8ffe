"""
Seed crawler core components.
"""

from .errors import (
    CrawlError, ParseError, SchemeError, SEOPolicyViolation,
    NetworkError, HTTPStatusError, ValidationIssue
)
from .url_validator import validate_url
from .url_normalizer import CanonicalKey, normalize_url, toggle_scheme
from .admission import AdmissionGate
from .completion import CompletionBarrier
from .fetcher import FetchTimer
from .engine import CrawlEngine, ScrapedPage, EngineClosedError
from .dispatcher import CrawlDispatcher, DispatchTask, TaskState, BatchResult

__all__ = [
    'CrawlError', 'ParseError', 'SchemeError', 'SEOPolicyViolation',
    'NetworkError', 'HTTPStatusError', 'ValidationIssue',
    'validate_url', 'CanonicalKey', 'normalize_url', 'toggle_scheme',
    'AdmissionGate', 'CompletionBarrier', 'FetchTimer',
    'CrawlEngine', 'ScrapedPage', 'EngineClosedError',
    'CrawlDispatcher', 'DispatchTask', 'TaskState', 'BatchResult'
]
