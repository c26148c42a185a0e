# -*- coding: utf-8 -*-
"""
TTS Service
===========
Italian narration for perle through Google Translate TTS (gTTS).
Also home of the text sanitizer shared with the card renderer.
"""

import logging
import re
import time
from pathlib import Path
from typing import Any, Dict, Optional

from gtts import gTTS
from gtts.tts import gTTSError

from pi_perle_stack.config.settings import settings

logger = logging.getLogger("perle.tts")

_DECORATIVE = re.compile(
    "["
    "\U0001F600-\U0001F64F"  # emoticons
    "\U0001F300-\U0001F5FF"  # misc symbols & pictographs
    "\U0001F680-\U0001F6FF"  # transport
    "\U0001F900-\U0001F9FF"  # supplemental symbols
    "\U0001FA00-\U0001FAFF"  # extended pictographs
    "\U0001F1E6-\U0001F1FF"  # regional indicators
    "\u2600-\u26FF"  # misc symbols
    "\u2700-\u27BF"  # dingbats
    "\uFE0E\uFE0F\u200D"  # variation selectors, ZWJ
    "]+"
)


def sanitize_text(text: str) -> str:
    """Strip emoji and other symbols that neither TTS nor the font render."""
    cleaned = _DECORATIVE.sub("", text)
    return re.sub(r"\s+", " ", cleaned).strip()


def primary_language(language: str) -> str:
    """'it-IT' -> 'it'."""
    return language.replace("_", "-").split("-")[0].lower() or "it"


class GoogleTTSService:
    """Generates mp3 narration via gTTS."""

    def __init__(
        self,
        language: Optional[str] = None,
        speed: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        cfg = settings.tts
        self.language = language or cfg.language
        self.speed = cfg.voice_speed if speed is None else speed
        self.max_retries = max_retries or cfg.max_retries

    def synthesize(self, text: str, output_path: str) -> Dict[str, Any]:
        """Write narration for `text` to `output_path` (mp3)."""
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        lang = primary_language(self.language)

        for attempt in range(1, self.max_retries + 1):
            try:
                tts = gTTS(text=text, lang=lang, slow=self.speed < 1.0)
                tts.save(str(output_file))
                logger.info("Narration generated: %s (%s)", output_file.name, lang)
                return {"file_path": str(output_file), "language": lang}
            except (gTTSError, OSError) as exc:
                logger.warning(
                    "gTTS attempt %d/%d failed: %s", attempt, self.max_retries, exc
                )
                if attempt < self.max_retries:
                    time.sleep(2**attempt)
                else:
                    raise
