# -*- coding: utf-8 -*-
"""
Mattermost Service
====================
Posts finished perla videos to a Mattermost channel for the team to
pick up, and sends pipeline status messages.

Mattermost API Reference:
  - POST /api/v4/posts   - Create post (up to 16,383 chars)
  - POST /api/v4/files   - Upload files (up to 100 MB)
  - Authorization: Bearer TOKEN
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from pi_perle_stack.config.settings import settings
from pi_perle_stack.database.models import ArtifactHandle, ContentItem, DeliveryResult
from pi_perle_stack.errors import ConfigurationError
from pi_perle_stack.services.base import DeliveryChannel

logger = logging.getLogger("perle.mattermost")


class MattermostService(DeliveryChannel):
    """Mattermost REST API client used as a delivery channel."""

    name = "mattermost"

    def __init__(
        self,
        url: Optional[str] = None,
        bot_token: Optional[str] = None,
        channel_id: Optional[str] = None,
    ):
        cfg = settings.mattermost
        self.base_url = (url if url is not None else cfg.url).rstrip("/")
        self.bot_token = bot_token if bot_token is not None else cfg.bot_token
        self.channel_id = channel_id if channel_id is not None else cfg.channel_id
        self._headers = {
            "Authorization": f"Bearer {self.bot_token}",
            "Content-Type": "application/json",
        }

    def _configured(self) -> bool:
        return bool(self.base_url and self.bot_token and self.channel_id)

    # ================================================================
    # Core API helpers
    # ================================================================

    def _post_message(self, message: str, file_ids: Optional[list] = None) -> Optional[str]:
        """Create a post in the configured channel; returns the post id."""
        payload: Dict[str, Any] = {
            "channel_id": self.channel_id,
            "message": message,
        }
        if file_ids:
            payload["file_ids"] = file_ids

        try:
            resp = requests.post(
                f"{self.base_url}/api/v4/posts",
                json=payload,
                headers=self._headers,
                timeout=30,
            )
            if resp.status_code in (200, 201):
                logger.info("Mattermost message sent")
                return resp.json().get("id", "")
            logger.error(
                "Mattermost send failed: %d %s", resp.status_code, resp.text[:200]
            )
            return None
        except (requests.RequestException, ValueError) as e:
            logger.error("Mattermost send error: %s", e)
            return None

    def _upload_file(self, file_path: str) -> Optional[str]:
        """Upload a file and return its Mattermost file ID."""
        path = Path(file_path)
        if not path.is_file():
            logger.error("File not found for upload: %s", file_path)
            return None

        try:
            with open(file_path, "rb") as f:
                resp = requests.post(
                    f"{self.base_url}/api/v4/files",
                    headers={"Authorization": f"Bearer {self.bot_token}"},
                    files={"files": (path.name, f)},
                    data={"channel_id": self.channel_id},
                    timeout=120,
                )
            if resp.status_code in (200, 201):
                file_id = resp.json()["file_infos"][0]["id"]
                logger.info("File uploaded: %s → %s", path.name, file_id)
                return file_id
            logger.error(
                "File upload failed: %d %s", resp.status_code, resp.text[:200]
            )
            return None
        except (requests.RequestException, ValueError, KeyError, IndexError) as e:
            logger.error("File upload error: %s", e)
            return None

    # ================================================================
    # Delivery
    # ================================================================

    def deliver(
        self, artifact: ArtifactHandle, caption: str, item: Optional[ContentItem] = None
    ) -> DeliveryResult:
        if not self._configured():
            raise ConfigurationError(
                "MATTERMOST_URL / MATTERMOST_BOT_TOKEN / MATTERMOST_CHANNEL_ID not set"
            )

        file_id = self._upload_file(artifact.video_path)
        if not file_id:
            return DeliveryResult.failed("Video upload to Mattermost failed")

        duration = f"{artifact.duration:.1f}s" if artifact.duration else "?"
        message = (
            f"### :pearl: Nuova perla pronta\n\n"
            f"| Field | Value |\n"
            f"|:------|:------|\n"
            f"| **Perla** | `{artifact.perla_id}` |\n"
            f"| **Duration** | {duration} |\n\n"
            f"---\n\n"
            f"{caption}\n"
        )
        if item is not None:
            message += f"\n**:memo: Testo:**\n```\n{item.text}\n```\n"

        post_id = self._post_message(message, file_ids=[file_id])
        if post_id is None:
            return DeliveryResult.failed("Mattermost post failed")
        return DeliveryResult.ok(f"mattermost:{post_id}", "Video posted to Mattermost")

    # ================================================================
    # Status notifications
    # ================================================================

    def send_status(self, message: str, level: str = "info") -> bool:
        """Send a simple status message."""
        if not self._configured():
            return False
        emoji = {
            "info": ":information_source:",
            "success": ":white_check_mark:",
            "warning": ":warning:",
            "error": ":x:",
        }.get(level, ":information_source:")
        return self._post_message(f"{emoji} **Perle Pipeline:** {message}") is not None
