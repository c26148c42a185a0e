# -*- coding: utf-8 -*-
"""
Sheet Source
============
Reads perle from a spreadsheet published as CSV
(column 0 = text, 1 = category, 2 = author, first row = header).
"""

import logging
from typing import List, Optional

import requests
from pydantic import ValidationError

from pi_perle_stack.config.settings import settings
from pi_perle_stack.database.models import ContentItem
from pi_perle_stack.errors import ConfigurationError, SourceUnavailable
from pi_perle_stack.services.base import ContentSource

logger = logging.getLogger("perle.sheet")


def parse_csv_row(line: str, delimiter: str = ",") -> List[str]:
    """
    Split one CSV row, honouring double-quoted fields.

    A quote toggles the in-quotes state; a doubled quote inside a quoted
    field is a literal quote; delimiters only split outside quotes.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    fields.append("".join(current).strip())
    return fields


class SheetSource(ContentSource):
    """Fetches the CSV export of a spreadsheet over HTTP."""

    name = "sheet"

    def __init__(
        self,
        csv_url: Optional[str] = None,
        timeout: Optional[int] = None,
        min_text_length: Optional[int] = None,
    ):
        cfg = settings.source
        self.csv_url = csv_url if csv_url is not None else cfg.sheet_csv_url
        self.timeout = timeout or cfg.timeout
        self.min_text_length = min_text_length or cfg.min_text_length

    def fetch(self) -> List[ContentItem]:
        if not self.csv_url:
            raise ConfigurationError("SHEET_CSV_URL is not set")

        logger.info("Fetching perle sheet from %s", self.csv_url[:60])
        try:
            resp = requests.get(self.csv_url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise SourceUnavailable(f"Sheet fetch failed: {exc}") from exc

        items = self.parse(self._decode(resp))
        logger.info("Sheet: %d valid perle", len(items))
        return items

    @staticmethod
    def _decode(resp: requests.Response) -> str:
        """Body as text; UTF-8 (BOM stripped) unless the server names a charset."""
        content_type = resp.headers.get("Content-Type", "")
        if "charset=" in content_type.lower():
            return resp.text
        return resp.content.decode("utf-8-sig", errors="replace")

    def parse(self, payload: str) -> List[ContentItem]:
        """Turn CSV text into validated perle, skipping the header row."""
        rows = [line for line in payload.splitlines() if line.strip()]
        items: List[ContentItem] = []
        seen = set()

        for line_no, line in enumerate(rows[1:], start=2):
            columns = parse_csv_row(line)
            text = columns[0] if columns else ""
            if len(text) < self.min_text_length:
                logger.debug("Row %d skipped: text too short", line_no)
                continue
            try:
                item = ContentItem.from_text(
                    text,
                    category=columns[1] if len(columns) > 1 else None,
                    author=columns[2] if len(columns) > 2 else None,
                    source_url=self.csv_url or None,
                )
            except ValidationError as exc:
                logger.debug("Row %d rejected: %s", line_no, exc)
                continue
            if item.id in seen:
                continue
            seen.add(item.id)
            items.append(item)

        return items
