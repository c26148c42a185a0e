# -*- coding: utf-8 -*-
"""
ElevenLabs Service
==================
Alternative narrator: multilingual TTS through the ElevenLabs REST API.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from pi_perle_stack.config.settings import settings
from pi_perle_stack.errors import ConfigurationError
from pi_perle_stack.services.tts_service import primary_language

logger = logging.getLogger("perle.elevenlabs")


class ElevenLabsService:
    """Generates mp3 voiceovers via ElevenLabs API."""

    API_BASE = "https://api.elevenlabs.io/v1"

    def __init__(
        self,
        language: Optional[str] = None,
        speed: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        cfg = settings.elevenlabs
        self._api_key = cfg.api_key
        self._voice_id = cfg.voice_id
        self._model = cfg.model
        self._output_format = cfg.output_format
        self.language = language or settings.tts.language
        self.speed = settings.tts.voice_speed if speed is None else speed
        self.max_retries = max_retries or settings.tts.max_retries

    def _headers(self) -> dict:
        return {
            "xi-api-key": self._api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }

    # ---- Voiceover -------------------------------------------------

    def synthesize(self, text: str, output_path: str) -> Dict[str, Any]:
        """Write narration for `text` to `output_path` (mp3)."""
        if not self._api_key or not self._voice_id:
            raise ConfigurationError("ELEVENLABS_API_KEY / ELEVENLABS_VOICE_ID not set")

        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        url = f"{self.API_BASE}/text-to-speech/{self._voice_id}"
        payload: Dict[str, Any] = {
            "text": text,
            "model_id": self._model,
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.75,
                # API accepts 0.7-1.2
                "speed": max(0.7, min(self.speed, 1.2)),
            },
        }
        if "v2_5" in self._model or "flash" in self._model:
            payload["language_code"] = primary_language(self.language)

        for attempt in range(1, self.max_retries + 1):
            try:
                resp = requests.post(
                    url,
                    params={"output_format": self._output_format},
                    json=payload,
                    headers=self._headers(),
                    timeout=300,
                )
                resp.raise_for_status()
                if not resp.content:
                    raise RuntimeError("ElevenLabs returned empty audio")

                output_file.write_bytes(resp.content)
                logger.info(
                    "Voiceover generated: %s (%.1f KB)",
                    output_file.name,
                    len(resp.content) / 1024,
                )
                return {"file_path": str(output_file), "language": self.language}

            except (requests.RequestException, RuntimeError) as exc:
                logger.warning(
                    "ElevenLabs attempt %d/%d failed: %s",
                    attempt,
                    self.max_retries,
                    exc,
                )
                if attempt < self.max_retries:
                    time.sleep(2**attempt)
                else:
                    raise
