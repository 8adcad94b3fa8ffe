"""
Per-batch state storage for the seed crawler.
"""

from .dedup_registry import DedupRegistry

__all__ = ['DedupRegistry']
