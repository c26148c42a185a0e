# -*- coding: utf-8 -*-
"""
Data Models
============
Pydantic models for perle, produced videos and delivery outcomes.
Raw rows from the page/sheet sources are validated into these at the
ingestion boundary; nothing downstream handles loose dicts.
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

MIN_TEXT_LENGTH = 10

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase + collapse whitespace; the basis of content-derived ids."""
    return _WHITESPACE.sub(" ", text).strip().lower()


def make_perla_id(text: str) -> str:
    """Stable id for a perla derived from its text."""
    digest = hashlib.sha1(normalize_text(text).encode("utf-8")).hexdigest()
    return f"perla-{digest[:12]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class ContentItem(BaseModel):
    """One perla as stored in the content database."""

    id: str
    text: str
    category: Optional[str] = None
    author: Optional[str] = None
    source_url: Optional[str] = None
    scraped_at: datetime = Field(default_factory=utcnow)
    published: bool = False
    published_at: Optional[datetime] = None
    delivery_reference: Optional[str] = None

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("id must not be blank")
        return value

    @field_validator("text")
    @classmethod
    def _text_long_enough(cls, value: str) -> str:
        value = value.strip()
        if len(value) < MIN_TEXT_LENGTH:
            raise ValueError(
                f"text shorter than {MIN_TEXT_LENGTH} characters: {value!r}"
            )
        return value

    @field_validator("category", "author", "source_url")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @model_validator(mode="after")
    def _publish_fields_consistent(self) -> "ContentItem":
        has_publish_data = (
            self.published_at is not None and self.delivery_reference is not None
        )
        if self.published and not has_publish_data:
            raise ValueError("published item needs published_at and delivery_reference")
        if not self.published and (
            self.published_at is not None or self.delivery_reference is not None
        ):
            raise ValueError("unpublished item cannot carry publish data")
        return self

    @classmethod
    def from_text(cls, text: str, **fields: Any) -> "ContentItem":
        """Build an item whose id is derived from the text."""
        return cls(id=make_perla_id(text), text=text, **fields)

    def preview(self, length: int = 100) -> str:
        if len(self.text) <= length:
            return self.text
        return self.text[:length] + "..."


# ---------------------------------------------------------------------------
# Production / delivery
# ---------------------------------------------------------------------------


class ArtifactHandle(BaseModel):
    """A finished video on disk, ready to hand to a delivery channel."""

    perla_id: str
    video_path: str
    duration: Optional[float] = None
    file_size_mb: Optional[float] = None
    resolution: str = ""


class DeliveryResult(BaseModel):
    """Outcome of handing a video to a channel."""

    success: bool
    reference: str = ""
    message: str = ""
    response: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, reference: str, message: str = "", **extra: Any) -> "DeliveryResult":
        return cls(success=True, reference=reference, message=message, **extra)

    @classmethod
    def failed(cls, message: str, **extra: Any) -> "DeliveryResult":
        return cls(success=False, message=message, **extra)
