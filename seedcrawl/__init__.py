"""
Seed Crawler

Dispatches a batch of seed URLs to a crawl engine after validating,
normalizing and deduplicating them, under a bounded concurrency budget.
"""

__version__ = "1.0.0"
__description__ = "Bounded-concurrency seed URL dispatcher with SEO linting and site-level dedup"
