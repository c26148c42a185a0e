# -*- coding: utf-8 -*-
"""
Workflow Orchestrator
=====================
Runs one perla cycle end to end:

    Idle -> FetchingSource -> Merging -> Selecting -> Producing
         -> Delivering -> Publishing -> Idle

Any state can end the cycle early (Idle, failed). Only one cycle runs at a
time: a trigger arriving while a cycle is in flight is dropped, not
queued. A perla is marked published only after the channel confirms
delivery, so a failed cycle leaves the store's unpublished set untouched.
"""

import logging
import random
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pi_perle_stack.database.content_store import ContentStore
from pi_perle_stack.database.models import ContentItem, utcnow
from pi_perle_stack.errors import ConfigurationError, ProductionFailed, SourceUnavailable
from pi_perle_stack.services.base import ArtifactProducer, ContentSource, DeliveryChannel
from pi_perle_stack.services.captions import build_caption

logger = logging.getLogger("pipeline.orchestrator")

DEFAULT_SELECTION_WINDOW = 5


class CycleState(str, Enum):
    IDLE = "idle"
    FETCHING_SOURCE = "fetching_source"
    MERGING = "merging"
    SELECTING = "selecting"
    PRODUCING = "producing"
    DELIVERING = "delivering"
    PUBLISHING = "publishing"


class CycleOutcome(str, Enum):
    PUBLISHED = "published"
    BUSY = "busy"
    SOURCE_EMPTY = "source_empty"
    SOURCE_FAILED = "source_failed"
    NOTHING_TO_PUBLISH = "nothing_to_publish"
    PRODUCTION_FAILED = "production_failed"
    DELIVERY_FAILED = "delivery_failed"
    CONFIGURATION_ERROR = "configuration_error"
    ERROR = "error"

    @property
    def is_failure(self) -> bool:
        return self not in (
            CycleOutcome.PUBLISHED,
            CycleOutcome.NOTHING_TO_PUBLISH,
            CycleOutcome.BUSY,
        )


@dataclass
class CycleResult:
    """What happened in one cycle."""

    outcome: CycleOutcome
    failed_state: Optional[CycleState] = None
    perla_id: Optional[str] = None
    artifact_path: Optional[str] = None
    delivery_reference: Optional[str] = None
    fetched: int = 0
    added: int = 0
    error: Optional[str] = None
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return not self.outcome.is_failure

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["outcome"] = self.outcome.value
        data["failed_state"] = self.failed_state.value if self.failed_state else None
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data


class CycleGuard:
    """Single-flight guard and current-state holder for the orchestrator."""

    def __init__(self):
        self._lock = threading.Lock()
        self._state = CycleState.IDLE

    @property
    def state(self) -> CycleState:
        return self._state

    def is_idle(self) -> bool:
        return not self._lock.locked()

    def try_start(self) -> bool:
        """Atomically claim the guard; False if a cycle is already running."""
        return self._lock.acquire(blocking=False)

    def advance(self, state: CycleState) -> None:
        self._state = state
        logger.info("→ %s", state.value)

    def finish(self) -> None:
        self._state = CycleState.IDLE
        self._lock.release()


class WorkflowOrchestrator:
    """Fetch → merge → select → produce → deliver → publish, one perla per cycle."""

    def __init__(
        self,
        store: ContentStore,
        source: ContentSource,
        producer: ArtifactProducer,
        channel: DeliveryChannel,
        selection_window: int = DEFAULT_SELECTION_WINDOW,
        hashtags: tuple = (),
        notify_failures: bool = False,
        rng: Optional[random.Random] = None,
        caption_builder: Optional[Callable[[ContentItem], str]] = None,
    ):
        self.store = store
        self.source = source
        self.producer = producer
        self.channel = channel
        self.selection_window = selection_window
        self.notify_failures = notify_failures
        self.rng = rng or random.Random()
        self.caption_builder = caption_builder or (
            lambda item: build_caption(hashtags, rng=self.rng)
        )
        self.guard = CycleGuard()

    # ================================================================
    # Entry point
    # ================================================================

    def run_cycle(self) -> CycleResult:
        """Run one cycle. Never raises; the outcome is in the returned result."""
        if not self.guard.try_start():
            logger.warning("Cycle already running, dropping this trigger")
            return CycleResult(outcome=CycleOutcome.BUSY, finished_at=utcnow())

        result = CycleResult(outcome=CycleOutcome.ERROR)
        logger.info("=== STARTING PERLE CYCLE (%s → %s) ===", self.source.name, self.channel.name)
        try:
            self._run(result)
        except ConfigurationError as exc:
            result.outcome = CycleOutcome.CONFIGURATION_ERROR
            result.failed_state = self.guard.state
            result.error = str(exc)
            logger.critical(
                "Configuration error in %s: %s", self.guard.state.value, exc
            )
        except Exception as exc:
            result.outcome = CycleOutcome.ERROR
            result.failed_state = self.guard.state
            result.error = f"{type(exc).__name__}: {exc}"
            logger.exception(
                "Cycle failed in %s (perla=%s)", self.guard.state.value, result.perla_id
            )
        finally:
            result.finished_at = utcnow()
            self.guard.finish()

        self._report(result)
        return result

    # ================================================================
    # States
    # ================================================================

    def _run(self, result: CycleResult) -> None:
        guard = self.guard

        # FetchingSource
        guard.advance(CycleState.FETCHING_SOURCE)
        logger.info("Step 1/4: Fetching perle from %s", self.source.name)
        try:
            fetched = self.source.fetch()
        except SourceUnavailable as exc:
            self._fail(result, CycleOutcome.SOURCE_FAILED, str(exc))
            return
        result.fetched = len(fetched)
        if not fetched:
            self._fail(result, CycleOutcome.SOURCE_EMPTY, "source returned no perle")
            return

        # Merging
        guard.advance(CycleState.MERGING)
        result.added = self.store.merge(fetched)
        logger.info("Fetched %d perle, %d new", result.fetched, result.added)

        # Selecting
        guard.advance(CycleState.SELECTING)
        item = self.select()
        if item is None:
            result.outcome = CycleOutcome.NOTHING_TO_PUBLISH
            result.failed_state = CycleState.SELECTING
            logger.info("No unpublished perle available")
            return
        result.perla_id = item.id
        logger.info("Selected perla %s: %s", item.id, item.preview())

        # Producing
        guard.advance(CycleState.PRODUCING)
        logger.info("Step 2/4: Producing video")
        try:
            artifact = self.producer.produce(item)
        except ProductionFailed as exc:
            self._fail(result, CycleOutcome.PRODUCTION_FAILED, str(exc))
            return
        result.artifact_path = artifact.video_path

        # Delivering
        guard.advance(CycleState.DELIVERING)
        logger.info("Step 3/4: Delivering via %s", self.channel.name)
        delivery = self.channel.deliver(artifact, self.caption_builder(item), item)
        if not delivery.success:
            self._fail(
                result,
                CycleOutcome.DELIVERY_FAILED,
                delivery.message or "delivery rejected",
            )
            logger.warning("Video kept for manual recovery: %s", artifact.video_path)
            return

        # Publishing
        guard.advance(CycleState.PUBLISHING)
        logger.info("Step 4/4: Marking perla as published")
        reference = delivery.reference or f"{self.channel.name}:{item.id}"
        self.store.mark_published(item.id, reference)
        result.delivery_reference = reference
        result.outcome = CycleOutcome.PUBLISHED
        result.failed_state = None

    def select(self) -> Optional[ContentItem]:
        """Uniform pick among the most recently added unpublished perle."""
        candidates = self.store.recent_unpublished(self.selection_window)
        if not candidates:
            return None
        return self.rng.choice(candidates)

    # ================================================================
    # Helpers
    # ================================================================

    def _fail(self, result: CycleResult, outcome: CycleOutcome, error: str) -> None:
        result.outcome = outcome
        result.failed_state = self.guard.state
        result.error = error
        logger.error("%s in %s: %s", outcome.value, self.guard.state.value, error)

    def _report(self, result: CycleResult) -> None:
        if result.outcome is CycleOutcome.PUBLISHED:
            logger.info(
                "=== CYCLE COMPLETED: perla %s published (%s) ===",
                result.perla_id,
                result.delivery_reference,
            )
            return

        logger.warning(
            "=== CYCLE ENDED: %s%s ===",
            result.outcome.value,
            f" ({result.error})" if result.error else "",
        )
        if not (self.notify_failures and result.outcome.is_failure):
            return

        message = f"Ciclo fallito ({result.outcome.value})"
        if result.perla_id:
            message += f" per perla {result.perla_id}"
        if result.error:
            message += f": {result.error[:500]}"
        if result.artifact_path:
            message += f" - video conservato in {result.artifact_path}"
        try:
            self.channel.send_status(message, level="error")
        except Exception as exc:
            logger.warning("Failure notification could not be sent: %s", exc)
