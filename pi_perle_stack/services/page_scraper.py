# -*- coding: utf-8 -*-
"""
Page Scraper Service
====================
Scrapes perle from the gruppoclasse.it listing page.
Tries a list of post selectors, keeps the first that matches, and turns
every matched node into a validated ContentItem.
"""

import logging
import re
from typing import List, Optional, Union
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag
from pydantic import ValidationError

from pi_perle_stack.config.settings import settings
from pi_perle_stack.database.models import ContentItem, make_perla_id
from pi_perle_stack.errors import SourceUnavailable
from pi_perle_stack.services.base import ContentSource

logger = logging.getLogger("perle.scraper")

POST_SELECTORS = (
    "article",
    ".post",
    ".entry",
    ".perla",
    ".story",
    ".content-item",
)
TEXT_SELECTOR = "p, .text, .content, .description, .body"

_SLUG = re.compile(r"/(\d+|[a-zA-Z0-9-]+)/?$")


class PageScraper(ContentSource):
    """Fetches a rendered listing page and extracts perle from it."""

    name = "page"

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[int] = None,
        max_text_length: Optional[int] = None,
        min_text_length: Optional[int] = None,
    ):
        self._cfg = settings.source
        self.url = url or self._cfg.page_url
        self.timeout = timeout or self._cfg.timeout
        self.max_text_length = max_text_length or self._cfg.max_text_length
        self.min_text_length = min_text_length or self._cfg.min_text_length

    # ================================================================
    # Fetch
    # ================================================================

    def fetch(self) -> List[ContentItem]:
        logger.info("Scraping perle from %s", self.url)
        try:
            resp = requests.get(
                self.url,
                timeout=self.timeout,
                headers={
                    "User-Agent": self._cfg.user_agent,
                    "Accept-Language": "it-IT,it;q=0.9",
                },
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise SourceUnavailable(f"Page fetch failed ({self.url}): {exc}") from exc

        # Without a charset header BeautifulSoup sniffs the bytes (BOM, <meta charset>)
        content_type = resp.headers.get("Content-Type", "").lower()
        declared = resp.encoding if "charset=" in content_type else None
        perle = self.extract(resp.content, base_url=resp.url or self.url, encoding=declared)
        logger.info("Scraped %d perle", len(perle))
        return perle

    # ================================================================
    # Extraction
    # ================================================================

    def extract(
        self,
        html: Union[str, bytes],
        base_url: Optional[str] = None,
        encoding: Optional[str] = None,
    ) -> List[ContentItem]:
        """Parse a page into perle using the first selector that matches."""
        if isinstance(html, bytes):
            soup = BeautifulSoup(html, "html.parser", from_encoding=encoding)
        else:
            soup = BeautifulSoup(html, "html.parser")
        base_url = base_url or self.url

        nodes: List[Tag] = []
        for selector in POST_SELECTORS:
            nodes = soup.select(selector)
            if nodes:
                logger.debug("Selector %r matched %d nodes", selector, len(nodes))
                break

        if not nodes:
            logger.warning("No post nodes found on %s", base_url)
            return []

        perle: List[ContentItem] = []
        seen = set()
        for index, node in enumerate(nodes):
            text = self._node_text(node)[: self.max_text_length].strip()
            if len(text) < self.min_text_length:
                continue

            href = self._node_link(node, base_url)
            perla_id = self._derive_id(href, text)
            if perla_id in seen:
                logger.debug("Node %d duplicates id %s, skipped", index, perla_id)
                continue

            try:
                item = ContentItem(id=perla_id, text=text, source_url=href or None)
            except ValidationError as exc:
                logger.debug("Node %d rejected: %s", index, exc)
                continue
            seen.add(perla_id)
            perle.append(item)

        return perle

    # ================================================================
    # Utilities
    # ================================================================

    @staticmethod
    def _node_text(node: Tag) -> str:
        target = node.select_one(TEXT_SELECTOR) or node
        return " ".join(target.get_text(" ").split())

    @staticmethod
    def _node_link(node: Tag, base_url: str) -> str:
        link = node.select_one("a[href]")
        if link is None:
            return ""
        return urljoin(base_url, link.get("href", "").strip())

    @staticmethod
    def _derive_id(href: str, text: str) -> str:
        """Trailing path segment of the post link, else a content hash."""
        if href:
            match = _SLUG.search(urlparse(href).path)
            if match:
                return match.group(1)
        return make_perla_id(text)
