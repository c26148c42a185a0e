# -*- coding: utf-8 -*-
"""
Service Interfaces
==================
Capabilities the orchestrator is wired with. Concrete variants are
picked at startup from configuration (see pipeline.wiring).
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from pi_perle_stack.database.models import ArtifactHandle, ContentItem, DeliveryResult


class ContentSource(ABC):
    """Fetches candidate perle. Raises SourceUnavailable on failure."""

    name: str = "source"

    @abstractmethod
    def fetch(self) -> List[ContentItem]:
        ...


class ArtifactProducer(ABC):
    """Turns one perla into a video. Raises ProductionFailed on failure."""

    @abstractmethod
    def produce(self, item: ContentItem) -> ArtifactHandle:
        ...


class DeliveryChannel(ABC):
    """
    Hands a finished video to a destination.

    Ordinary failures come back as DeliveryResult(success=False); only
    missing configuration raises (ConfigurationError).
    """

    name: str = "channel"

    @abstractmethod
    def deliver(
        self, artifact: ArtifactHandle, caption: str, item: Optional[ContentItem] = None
    ) -> DeliveryResult:
        ...

    def send_status(self, message: str, level: str = "info") -> bool:
        """Best-effort text notification. Channels without one return False."""
        return False
