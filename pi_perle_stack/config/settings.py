# -*- coding: utf-8 -*-
"""
Central Configuration
=====================
Loads all environment variables from .env and exposes them as frozen dataclasses.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from pi_perle_stack.database.models import MIN_TEXT_LENGTH

# ---------------------------------------------------------------------------
# Resolve project root and load .env
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")

# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SourceConfig:
    kind: str = "page"  # page | sheet
    page_url: str = "https://gruppoclasse.it"
    sheet_csv_url: str = ""
    timeout: int = 30
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    min_text_length: int = 10
    max_text_length: int = 500


@dataclass(frozen=True)
class TTSConfig:
    provider: str = "gtts"  # gtts | elevenlabs
    language: str = "it-IT"
    voice_speed: float = 1.0
    max_retries: int = 3


@dataclass(frozen=True)
class ElevenLabsConfig:
    api_key: str = ""
    voice_id: str = ""
    model: str = "eleven_multilingual_v2"
    output_format: str = "mp3_44100_128"


@dataclass(frozen=True)
class VideoConfig:
    width: int = 1080
    height: int = 1920
    fps: int = 30
    max_duration: int = 60
    tail_seconds: float = 0.8
    font: str = "DejaVuSans-Bold.ttf"
    font_size: int = 52
    min_font_size: int = 28
    header_title: str = "gruppoclasse.it"
    header_subtitle: str = "Le Perle"
    background_color: str = "#ECE5DD"
    header_color: str = "#128C7E"
    bubble_color: str = "#DCF8C6"
    text_color: str = "#1A1A1A"


@dataclass(frozen=True)
class TelegramConfig:
    bot_token: str = ""
    chat_id: str = ""
    api_base: str = "https://api.telegram.org"


@dataclass(frozen=True)
class BufferConfig:
    access_token: str = ""
    profile_id: str = ""
    api_base: str = "https://api.bufferapp.com/1"


@dataclass(frozen=True)
class MattermostConfig:
    url: str = ""
    bot_token: str = ""
    channel_id: str = ""


@dataclass(frozen=True)
class DeliveryConfig:
    channel: str = "telegram"  # telegram | buffer | mattermost
    hashtags: Tuple[str, ...] = ("#gruppoclasse", "#mamme", "#scuola", "#perle")
    notify_failures: bool = True


@dataclass(frozen=True)
class ScheduleConfig:
    time1: str = "0 10 * * *"  # 10:00
    time2: str = "0 18 * * *"  # 18:00
    timezone: str = "Europe/Rome"
    selection_window: int = 5


@dataclass(frozen=True)
class PathsConfig:
    data: str = "data"
    videos: str = "videos"
    logs: str = "logs"

    @property
    def store_file(self) -> Path:
        return Path(self.data) / "content-db.json"

    @property
    def temp(self) -> Path:
        return Path(self.videos) / "temp"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _split_hashtags(value: str) -> Tuple[str, ...]:
    return tuple(tag.strip() for tag in value.split(",") if tag.strip())


# ---------------------------------------------------------------------------
# Lazy-loaded global settings
# ---------------------------------------------------------------------------
class _Settings:
    """Lazy singleton - reads env vars on first access."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._loaded = False
        return cls._instance

    def _load(self):
        if self._loaded:
            return
        e = os.environ.get

        self.source = SourceConfig(
            kind=e("PERLE_SOURCE", "page").lower(),
            page_url=e("GRUPPOCLASSE_URL", "https://gruppoclasse.it"),
            sheet_csv_url=e("SHEET_CSV_URL", ""),
            timeout=int(e("SCRAPE_TIMEOUT", "30")),
            # ContentItem rejects anything shorter than MIN_TEXT_LENGTH anyway
            min_text_length=max(MIN_TEXT_LENGTH, int(e("PERLE_MIN_TEXT_LENGTH", "10"))),
            max_text_length=int(e("PERLE_MAX_TEXT_LENGTH", "500")),
        )
        self.tts = TTSConfig(
            provider=e("TTS_PROVIDER", "gtts").lower(),
            language=e("TTS_LANGUAGE", "it-IT"),
            voice_speed=float(e("TTS_VOICE_SPEED", "1.0")),
            max_retries=int(e("TTS_MAX_RETRIES", "3")),
        )
        self.elevenlabs = ElevenLabsConfig(
            api_key=e("ELEVENLABS_API_KEY", ""),
            voice_id=e("ELEVENLABS_VOICE_ID", ""),
            model=e("ELEVENLABS_MODEL", "eleven_multilingual_v2"),
        )
        self.video = VideoConfig(
            width=int(e("VIDEO_WIDTH", "1080")),
            height=int(e("VIDEO_HEIGHT", "1920")),
            fps=int(e("VIDEO_FPS", "30")),
            max_duration=int(e("VIDEO_MAX_DURATION", "60")),
            font=e("VIDEO_FONT", "DejaVuSans-Bold.ttf"),
        )
        self.telegram = TelegramConfig(
            bot_token=e("TELEGRAM_BOT_TOKEN", ""),
            chat_id=e("TELEGRAM_CHAT_ID", ""),
        )
        self.buffer = BufferConfig(
            access_token=e("BUFFER_ACCESS_TOKEN", ""),
            profile_id=e("BUFFER_PROFILE_ID", ""),
        )
        self.mattermost = MattermostConfig(
            url=e("MATTERMOST_URL", ""),
            bot_token=e("MATTERMOST_BOT_TOKEN", ""),
            channel_id=e("MATTERMOST_CHANNEL_ID", ""),
        )
        self.delivery = DeliveryConfig(
            channel=e("PERLE_CHANNEL", "telegram").lower(),
            hashtags=_split_hashtags(
                e("HASHTAGS", "#gruppoclasse,#mamme,#scuola,#perle")
            ),
            notify_failures=_as_bool(e("NOTIFY_FAILURES", "true")),
        )
        self.schedule = ScheduleConfig(
            time1=e("SCHEDULE_TIME_1", "0 10 * * *"),
            time2=e("SCHEDULE_TIME_2", "0 18 * * *"),
            timezone=e("SCHEDULE_TIMEZONE", "Europe/Rome"),
            selection_window=int(e("SELECTION_WINDOW", "5")),
        )
        self.paths = PathsConfig(
            data=e("DATA_DIR", "data"),
            videos=e("VIDEOS_DIR", "videos"),
            logs=e("LOGS_DIR", "logs"),
        )
        self.log_level = e("LOG_LEVEL", "INFO").upper()

        self._loaded = True

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        self._load()
        try:
            return self.__dict__[name]
        except KeyError:
            raise AttributeError(f"Unknown setting: {name}") from None


settings = _Settings()


def reload_settings(env_file: Optional[str] = None) -> _Settings:
    """Drop cached values so the next access re-reads the environment."""
    if env_file:
        load_dotenv(env_file, override=True)
    for key in list(settings.__dict__):
        if key != "_loaded":
            del settings.__dict__[key]
    settings._loaded = False
    return settings
