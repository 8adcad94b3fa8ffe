"""
HTML parser used by the crawl engine to summarise scraped pages.
"""

import re
import logging
from typing import List, Optional
from urllib.parse import urljoin, urlparse, urlunparse
from dataclasses import dataclass, field
from bs4 import BeautifulSoup


@dataclass
class ParsedPage:
    """Title and outbound links of one HTML page."""
    url: str
    title: Optional[str] = None
    links: List[str] = field(default_factory=list)


class ContentParser:
    """
    Extracts the page title and absolute http(s) links from HTML.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.whitespace_pattern = re.compile(r'\s+')

    def parse(self, url: str, html_content: str) -> ParsedPage:
        """
        Parse HTML content.

        Args:
            url: The URL of the page, used to resolve relative links
            html_content: Raw HTML content

        Returns:
            ParsedPage with whatever could be extracted
        """
        parsed_page = ParsedPage(url=url)
        if not html_content:
            return parsed_page

        soup = BeautifulSoup(html_content, 'lxml')

        title_tag = soup.find('title')
        if title_tag:
            parsed_page.title = self._clean_text(title_tag.get_text())

        parsed_page.links = self._extract_links(soup, url)

        self.logger.debug(f"Parsed {url}: {len(parsed_page.links)} links")
        return parsed_page

    def _extract_links(self, soup: BeautifulSoup, base_url: str) -> List[str]:
        """Resolve, normalize and deduplicate anchor targets, keeping document order."""
        links = []
        seen = set()

        for link in soup.find_all('a', href=True):
            href = link['href'].strip()
            if not href or href.startswith('#'):
                continue

            absolute_url = self._normalize_url(urljoin(base_url, href))
            if absolute_url not in seen and self._is_valid_url(absolute_url):
                seen.add(absolute_url)
                links.append(absolute_url)

        return links

    def _normalize_url(self, url: str) -> str:
        """Drop the fragment and lower-case the host."""
        try:
            parsed = urlparse(url)
        except ValueError:
            return url
        return urlunparse((
            parsed.scheme,
            parsed.netloc.lower(),
            parsed.path,
            parsed.params,
            parsed.query,
            ''
        ))

    def _is_valid_url(self, url: str) -> bool:
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        return parsed.scheme in ('http', 'https') and bool(parsed.netloc)

    def _clean_text(self, text: str) -> str:
        if not text:
            return ""
        return self.whitespace_pattern.sub(' ', text.strip())
