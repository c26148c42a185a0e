"""Tests for perla data models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from pi_perle_stack.database.models import (
    ContentItem,
    DeliveryResult,
    make_perla_id,
    normalize_text,
)


class TestPerlaId:
    def test_stable_for_same_text(self):
        assert make_perla_id("Ciao a tutti quanti") == make_perla_id("Ciao a tutti quanti")

    def test_ignores_case_and_spacing(self):
        assert make_perla_id("Ciao  a tutti\nquanti ") == make_perla_id("ciao a TUTTI quanti")

    def test_different_text_different_id(self):
        assert make_perla_id("Ciao a tutti quanti") != make_perla_id("Buongiorno gruppo")

    def test_format(self):
        perla_id = make_perla_id("Buongiorno gruppo")
        assert perla_id.startswith("perla-")
        assert len(perla_id) == len("perla-") + 12

    def test_normalize_text(self):
        assert normalize_text("  A  b\tC ") == "a b c"


class TestContentItem:
    def test_defaults(self):
        item = ContentItem.from_text("Buongiorno gruppo")
        assert item.published is False
        assert item.published_at is None
        assert item.delivery_reference is None
        assert item.category is None
        assert item.scraped_at.tzinfo is not None

    def test_text_is_stripped(self):
        item = ContentItem(id="x1", text="   Buongiorno gruppo  ")
        assert item.text == "Buongiorno gruppo"

    def test_rejects_short_text(self):
        with pytest.raises(ValidationError):
            ContentItem(id="x1", text="Ciao!")

    def test_rejects_whitespace_padded_short_text(self):
        with pytest.raises(ValidationError):
            ContentItem(id="x1", text="   ciao     ")

    def test_rejects_blank_id(self):
        with pytest.raises(ValidationError):
            ContentItem(id="  ", text="Buongiorno gruppo")

    def test_blank_metadata_becomes_none(self):
        item = ContentItem.from_text("Buongiorno gruppo", category=" ", author="")
        assert item.category is None
        assert item.author is None

    def test_published_requires_timestamp_and_reference(self):
        with pytest.raises(ValidationError):
            ContentItem(id="x1", text="Buongiorno gruppo", published=True)

    def test_unpublished_cannot_carry_reference(self):
        with pytest.raises(ValidationError):
            ContentItem(id="x1", text="Buongiorno gruppo", delivery_reference="ref")

    def test_published_item_valid(self):
        now = datetime.now(tz=timezone.utc)
        item = ContentItem(
            id="x1",
            text="Buongiorno gruppo",
            published=True,
            published_at=now,
            delivery_reference="telegram:1:2",
        )
        assert item.published_at == now

    def test_preview_truncates(self):
        item = ContentItem.from_text("a" * 150)
        assert item.preview(100) == "a" * 100 + "..."
        assert ContentItem.from_text("Buongiorno gruppo").preview() == "Buongiorno gruppo"


class TestDeliveryResult:
    def test_ok(self):
        result = DeliveryResult.ok("ref-1", "sent")
        assert result.success is True
        assert result.reference == "ref-1"

    def test_failed(self):
        result = DeliveryResult.failed("nope")
        assert result.success is False
        assert result.reference == ""
        assert result.message == "nope"
