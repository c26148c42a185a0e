"""Shared fixtures and fakes for the perle pipeline tests."""

from pathlib import Path
from typing import List, Optional

import pytest

from pi_perle_stack.config.settings import reload_settings
from pi_perle_stack.database.content_store import ContentStore
from pi_perle_stack.database.models import ArtifactHandle, ContentItem, DeliveryResult
from pi_perle_stack.services.base import ArtifactProducer, ContentSource, DeliveryChannel

ENV_KEYS = (
    "PERLE_SOURCE",
    "GRUPPOCLASSE_URL",
    "SHEET_CSV_URL",
    "TTS_PROVIDER",
    "TTS_LANGUAGE",
    "TTS_VOICE_SPEED",
    "ELEVENLABS_API_KEY",
    "ELEVENLABS_VOICE_ID",
    "PERLE_CHANNEL",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "BUFFER_ACCESS_TOKEN",
    "BUFFER_PROFILE_ID",
    "MATTERMOST_URL",
    "MATTERMOST_BOT_TOKEN",
    "MATTERMOST_CHANNEL_ID",
    "HASHTAGS",
    "NOTIFY_FAILURES",
    "SCHEDULE_TIME_1",
    "SCHEDULE_TIME_2",
    "SELECTION_WINDOW",
    "PERLE_MIN_TEXT_LENGTH",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Each test sees default settings with data/videos/logs under tmp_path."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("VIDEOS_DIR", str(tmp_path / "videos"))
    monkeypatch.setenv("LOGS_DIR", str(tmp_path / "logs"))
    reload_settings()
    yield
    reload_settings()


@pytest.fixture
def store(tmp_path) -> ContentStore:
    return ContentStore(tmp_path / "data" / "content-db.json")


def make_item(text: str, **fields) -> ContentItem:
    return ContentItem.from_text(text, **fields)


class FakeSource(ContentSource):
    name = "fake-source"

    def __init__(self, items: Optional[List[ContentItem]] = None, error: Optional[Exception] = None):
        self.items = items or []
        self.error = error
        self.calls = 0

    def fetch(self) -> List[ContentItem]:
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.items)


class FakeProducer(ArtifactProducer):
    def __init__(self, out_dir: Path, error: Optional[Exception] = None):
        self.out_dir = out_dir
        self.error = error
        self.produced: List[str] = []

    def produce(self, item: ContentItem) -> ArtifactHandle:
        if self.error:
            raise self.error
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.out_dir / f"video-{item.id}.mp4"
        path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
        self.produced.append(item.id)
        return ArtifactHandle(perla_id=item.id, video_path=str(path), duration=5.0)


class FakeChannel(DeliveryChannel):
    name = "fake-channel"

    def __init__(self, result: Optional[DeliveryResult] = None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.deliveries = []
        self.statuses = []

    def deliver(self, artifact, caption, item=None) -> DeliveryResult:
        self.deliveries.append((artifact, caption, item))
        if self.error:
            raise self.error
        return self.result or DeliveryResult.ok(f"ref-{artifact.perla_id}")

    def send_status(self, message: str, level: str = "info") -> bool:
        self.statuses.append((message, level))
        return True
