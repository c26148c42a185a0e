# -*- coding: utf-8 -*-
"""
Content Store
=============
Flat JSON database of perle and their publication status.

The whole file is read and rewritten on every operation. Writes go to a
temp file in the same directory followed by an atomic rename, so a crash
leaves either the old or the new file on disk, never a partial one.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from pi_perle_stack.database.models import ContentItem, utcnow
from pi_perle_stack.errors import StoreCorrupt

logger = logging.getLogger("perle.store")


class _StoreData(BaseModel):
    """On-disk layout: {"items": [...]}."""

    items: List[ContentItem] = Field(default_factory=list)


class ContentStore:
    """JSON-backed store, sole owner of the persisted perle collection."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    # ================================================================
    # Persistence
    # ================================================================

    def _read(self) -> _StoreData:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (OSError, ValueError, ValidationError) as exc:
            raise StoreCorrupt(f"Unreadable content store {self.path}: {exc}") from exc

    def _write(self, data: _StoreData) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = data.model_dump_json(indent=2)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _reset(self, reason: str) -> _StoreData:
        """Move an unreadable file aside and start from an empty store."""
        if self.path.exists():
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
            try:
                os.replace(self.path, backup)
                logger.error("Content store corrupt (%s), moved to %s", reason, backup.name)
            except OSError as exc:
                logger.error("Could not move corrupt store aside: %s", exc)
        else:
            logger.info("Creating content database at %s", self.path)

        data = _StoreData()
        self._write(data)
        return data

    def _load_data(self) -> _StoreData:
        if not self.path.is_file():
            return self._reset("missing")
        try:
            return self._read()
        except StoreCorrupt as exc:
            return self._reset(str(exc))

    # ================================================================
    # Queries
    # ================================================================

    def load(self) -> List[ContentItem]:
        """All perle in store order. Never raises for missing/corrupt files."""
        return list(self._load_data().items)

    def get(self, perla_id: str) -> Optional[ContentItem]:
        for item in self._load_data().items:
            if item.id == perla_id:
                return item
        return None

    def unpublished_items(self) -> List[ContentItem]:
        return [item for item in self._load_data().items if not item.published]

    def recent_unpublished(self, window: int) -> List[ContentItem]:
        """The last `window` unpublished perle in store order (all if window <= 0)."""
        pending = self.unpublished_items()
        if window <= 0:
            return pending
        return pending[-window:]

    def stats(self) -> Dict[str, int]:
        items = self._load_data().items
        published = sum(1 for item in items if item.published)
        return {
            "total": len(items),
            "published": published,
            "unpublished": len(items) - published,
        }

    # ================================================================
    # Mutations
    # ================================================================

    def merge(self, candidates: Iterable[ContentItem]) -> int:
        """Append perle whose id is not stored yet. Returns how many were added."""
        data = self._load_data()
        known = {item.id for item in data.items}

        added = 0
        for candidate in candidates:
            if candidate.id in known:
                continue
            fresh = candidate.model_copy(
                update={
                    "published": False,
                    "published_at": None,
                    "delivery_reference": None,
                }
            )
            data.items.append(fresh)
            known.add(fresh.id)
            added += 1

        if added:
            self._write(data)
            logger.info("Added %d new perle to database", added)
        else:
            logger.info("No new perle to add")
        return added

    def mark_published(self, perla_id: str, delivery_reference: str) -> bool:
        """
        Flip a perla to published.

        Unknown ids are logged and ignored (returns False). An already
        published perla keeps its first timestamp and reference.
        """
        data = self._load_data()
        for index, item in enumerate(data.items):
            if item.id != perla_id:
                continue
            if item.published:
                logger.info("Perla %s already published, keeping original record", perla_id)
                return True
            data.items[index] = item.model_copy(
                update={
                    "published": True,
                    "published_at": utcnow(),
                    "delivery_reference": delivery_reference,
                }
            )
            self._write(data)
            logger.info("Marked perla %s as published (%s)", perla_id, delivery_reference)
            return True

        logger.warning("Cannot mark unknown perla %s as published", perla_id)
        return False
