# -*- coding: utf-8 -*-
"""
Buffer Service
==============
Publishes perla videos to TikTok via the Buffer API
(direct-to-platform delivery channel).
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from pi_perle_stack.config.settings import settings
from pi_perle_stack.database.models import ArtifactHandle, ContentItem, DeliveryResult
from pi_perle_stack.errors import ConfigurationError
from pi_perle_stack.services.base import DeliveryChannel

logger = logging.getLogger("perle.buffer")

MAX_UPLOAD_MB = 500


class BufferService(DeliveryChannel):
    """Buffer API client for TikTok auto-publishing."""

    name = "buffer"

    def __init__(
        self,
        access_token: Optional[str] = None,
        profile_id: Optional[str] = None,
        api_base: Optional[str] = None,
    ):
        cfg = settings.buffer
        self.access_token = access_token if access_token is not None else cfg.access_token
        self.profile_id = profile_id if profile_id is not None else cfg.profile_id
        self.api_base = (api_base or cfg.api_base).rstrip("/")
        self.session = requests.Session()
        self.session.params = {"access_token": self.access_token}

    # ================================================================
    # Delivery
    # ================================================================

    def deliver(
        self, artifact: ArtifactHandle, caption: str, item: Optional[ContentItem] = None
    ) -> DeliveryResult:
        if not self.access_token or not self.profile_id:
            raise ConfigurationError("BUFFER_ACCESS_TOKEN / BUFFER_PROFILE_ID not set")

        outcome = self.publish_video(artifact.video_path, caption)
        if outcome["success"]:
            return DeliveryResult.ok(
                f"buffer:{outcome['update_id']}",
                outcome["message"],
                response=outcome.get("response", {}),
            )
        return DeliveryResult.failed(outcome["message"], response=outcome.get("response", {}))

    def publish_video(self, video_path: str, caption: str) -> Dict[str, Any]:
        """
        Publish a video to TikTok via Buffer, posted immediately.

        Args:
            video_path: Path to the rendered .mp4 file.
            caption: Post text, hashtags included.

        Returns:
            dict with success, update_id, message
        """
        video_file = Path(video_path)
        if not video_file.is_file():
            return {"success": False, "update_id": None, "message": f"Video not found: {video_path}"}

        file_size_mb = video_file.stat().st_size / (1024 * 1024)
        if file_size_mb > MAX_UPLOAD_MB:
            return {
                "success": False,
                "update_id": None,
                "message": f"Video too large: {file_size_mb:.1f}MB (max {MAX_UPLOAD_MB}MB)",
            }

        url = f"{self.api_base}/updates/create.json"
        data = {
            "profile_ids[]": self.profile_id,
            "text": caption,
            "now": "true",
        }

        try:
            with open(video_file, "rb") as vf:
                files = {"media[video]": (video_file.name, vf, "video/mp4")}
                resp = self.session.post(url, data=data, files=files, timeout=120)

            resp_data = resp.json()

            if resp.status_code == 200 and resp_data.get("success"):
                update_id = resp_data.get("buffer_url", "")
                updates = resp_data.get("updates", [])
                if updates:
                    update_id = updates[0].get("id", update_id)

                logger.info("Buffer publish success: %s", update_id)
                return {
                    "success": True,
                    "update_id": update_id,
                    "message": "Video queued for TikTok publishing",
                    "response": resp_data,
                }

            error_msg = resp_data.get("message", resp.text[:500])
            logger.error("Buffer publish failed: %s", error_msg)
            return {
                "success": False,
                "update_id": None,
                "message": error_msg,
                "response": resp_data,
            }

        except requests.Timeout:
            logger.error("Buffer upload timed out for %s", video_path)
            return {
                "success": False,
                "update_id": None,
                "message": "Upload timed out (120s)",
            }
        except (requests.RequestException, ValueError) as e:
            logger.error("Buffer publish error: %s", e)
            return {
                "success": False,
                "update_id": None,
                "message": str(e),
            }
