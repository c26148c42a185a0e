# -*- coding: utf-8 -*-
"""
Telegram Service
================
Relays finished perla videos to a Telegram chat through a bot, so they
can be posted to TikTok by hand from the phone.

Bot API Reference:
  - POST /bot<TOKEN>/sendVideo    - multipart upload (50 MB limit for bots)
  - POST /bot<TOKEN>/sendMessage  - text, parse_mode=HTML
"""

import html
import logging
from pathlib import Path
from typing import Optional

import requests

from pi_perle_stack.config.settings import settings
from pi_perle_stack.database.models import ArtifactHandle, ContentItem, DeliveryResult
from pi_perle_stack.errors import ConfigurationError
from pi_perle_stack.services.base import DeliveryChannel

logger = logging.getLogger("perle.telegram")

MAX_UPLOAD_MB = 50
CAPTION_LIMIT = 1024


class TelegramService(DeliveryChannel):
    """Telegram Bot API client used as a delivery channel."""

    name = "telegram"

    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id: Optional[str] = None,
        api_base: Optional[str] = None,
    ):
        cfg = settings.telegram
        self.bot_token = bot_token if bot_token is not None else cfg.bot_token
        self.chat_id = chat_id if chat_id is not None else cfg.chat_id
        self.api_base = (api_base or cfg.api_base).rstrip("/")

    @property
    def base_url(self) -> str:
        return f"{self.api_base}/bot{self.bot_token}"

    def _require_config(self) -> None:
        if not self.bot_token or not self.chat_id:
            raise ConfigurationError("TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID not set")

    # ================================================================
    # Delivery
    # ================================================================

    def deliver(
        self, artifact: ArtifactHandle, caption: str, item: Optional[ContentItem] = None
    ) -> DeliveryResult:
        self._require_config()

        video_file = Path(artifact.video_path)
        if not video_file.is_file():
            return DeliveryResult.failed(f"Video file missing: {video_file}")

        size_mb = video_file.stat().st_size / (1024 * 1024)
        if size_mb > MAX_UPLOAD_MB:
            return DeliveryResult.failed(
                f"Video too large for Telegram: {size_mb:.1f}MB (max {MAX_UPLOAD_MB}MB)"
            )

        logger.info("Sending video to Telegram chat %s...", self.chat_id)
        data = {"chat_id": self.chat_id, "supports_streaming": "true"}
        if caption:
            data["caption"] = caption[:CAPTION_LIMIT]

        try:
            with open(video_file, "rb") as vf:
                resp = requests.post(
                    f"{self.base_url}/sendVideo",
                    data=data,
                    files={"video": (video_file.name, vf, "video/mp4")},
                    timeout=300,
                )
            body = resp.json()
        except requests.RequestException as exc:
            logger.error("Telegram upload error: %s", exc)
            return DeliveryResult.failed(f"Telegram request failed: {exc}")
        except ValueError:
            logger.error("Telegram returned non-JSON response (%d)", resp.status_code)
            return DeliveryResult.failed(f"Telegram HTTP {resp.status_code}")

        if resp.status_code == 200 and body.get("ok"):
            message_id = body.get("result", {}).get("message_id", "")
            reference = f"telegram:{self.chat_id}:{message_id}"
            logger.info("Video sent to Telegram (%s)", reference)
            return DeliveryResult.ok(reference, "Video sent to Telegram", response=body)

        description = body.get("description") or resp.text[:200]
        logger.error("Telegram rejected video: %s", description)
        return DeliveryResult.failed(description, response=body)

    # ================================================================
    # Status notifications
    # ================================================================

    def send_status(self, message: str, level: str = "info") -> bool:
        if not self.bot_token or not self.chat_id:
            return False
        emoji = {
            "info": "ℹ️",
            "success": "✅",
            "warning": "⚠️",
            "error": "❌",
        }.get(level, "ℹ️")
        try:
            resp = requests.post(
                f"{self.base_url}/sendMessage",
                json={
                    "chat_id": self.chat_id,
                    "text": f"{emoji} <b>Perle:</b> {html.escape(message)}",
                    "parse_mode": "HTML",
                },
                timeout=30,
            )
            if resp.status_code == 200:
                logger.info("Telegram message sent")
                return True
            logger.error("Telegram message failed: %d %s", resp.status_code, resp.text[:200])
            return False
        except requests.RequestException as exc:
            logger.error("Telegram message error: %s", exc)
            return False
