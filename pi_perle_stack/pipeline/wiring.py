# -*- coding: utf-8 -*-
"""
Wiring
======
Builds the concrete source / narrator / producer / channel variants named
in the configuration and assembles the orchestrator from them.
"""

import logging
from typing import Optional

from pi_perle_stack.config.settings import settings
from pi_perle_stack.database.content_store import ContentStore
from pi_perle_stack.errors import ConfigurationError
from pi_perle_stack.pipeline.orchestrator import WorkflowOrchestrator
from pi_perle_stack.services.base import ContentSource, DeliveryChannel
from pi_perle_stack.services.buffer_service import BufferService
from pi_perle_stack.services.elevenlabs_service import ElevenLabsService
from pi_perle_stack.services.mattermost_service import MattermostService
from pi_perle_stack.services.page_scraper import PageScraper
from pi_perle_stack.services.sheet_source import SheetSource
from pi_perle_stack.services.telegram_service import TelegramService
from pi_perle_stack.services.tts_service import GoogleTTSService
from pi_perle_stack.services.video_producer import PerlaVideoProducer

logger = logging.getLogger("pipeline.wiring")

SOURCES = {
    "page": PageScraper,
    "sheet": SheetSource,
}
NARRATORS = {
    "gtts": GoogleTTSService,
    "elevenlabs": ElevenLabsService,
}
CHANNELS = {
    "telegram": TelegramService,
    "buffer": BufferService,
    "mattermost": MattermostService,
}


def _pick(registry: dict, kind: str, what: str):
    try:
        return registry[kind]
    except KeyError:
        raise ConfigurationError(
            f"Unknown {what} '{kind}' (expected one of: {', '.join(sorted(registry))})"
        ) from None


def build_store() -> ContentStore:
    return ContentStore(settings.paths.store_file)


def build_source(kind: Optional[str] = None) -> ContentSource:
    return _pick(SOURCES, kind or settings.source.kind, "source")()


def build_narrator(provider: Optional[str] = None):
    return _pick(NARRATORS, provider or settings.tts.provider, "TTS provider")()


def build_producer() -> PerlaVideoProducer:
    return PerlaVideoProducer(
        narrator=build_narrator(),
        videos_dir=settings.paths.videos,
        temp_dir=settings.paths.temp,
    )


def build_channel(kind: Optional[str] = None) -> DeliveryChannel:
    return _pick(CHANNELS, kind or settings.delivery.channel, "delivery channel")()


def build_orchestrator() -> WorkflowOrchestrator:
    """Orchestrator wired from the current settings."""
    source = build_source()
    channel = build_channel()
    logger.info(
        "Wiring: source=%s, tts=%s, channel=%s, window=%d",
        source.name,
        settings.tts.provider,
        channel.name,
        settings.schedule.selection_window,
    )
    return WorkflowOrchestrator(
        store=build_store(),
        source=source,
        producer=build_producer(),
        channel=channel,
        selection_window=settings.schedule.selection_window,
        hashtags=settings.delivery.hashtags,
        notify_failures=settings.delivery.notify_failures,
    )
