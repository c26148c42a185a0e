# -*- coding: utf-8 -*-
"""
Perla Video Producer
====================
Turns one perla into a finished vertical video:
  1. narration (TTS) -> temp mp3
  2. text card (Pillow) -> temp png
  3. composition (FFmpeg) -> videos/video-<id>-<timestamp>.mp4

Temp files never outlive a run: image and audio are removed on success,
and on failure everything created so far (including a partial video)
is removed before the error propagates.
"""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from pi_perle_stack.config.settings import settings
from pi_perle_stack.database.models import ArtifactHandle, ContentItem
from pi_perle_stack.errors import ConfigurationError, ProductionFailed
from pi_perle_stack.services.base import ArtifactProducer
from pi_perle_stack.services.text_renderer import TextCardRenderer
from pi_perle_stack.services.tts_service import sanitize_text
from pi_perle_stack.services.video_assembler import VideoAssembler

logger = logging.getLogger("perle.producer")


def _safe_name(value: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in value)[:60]


class PerlaVideoProducer(ArtifactProducer):
    """Narration + text card + FFmpeg composition for one perla."""

    def __init__(
        self,
        narrator,
        renderer: Optional[TextCardRenderer] = None,
        assembler: Optional[VideoAssembler] = None,
        videos_dir: Optional[Union[str, Path]] = None,
        temp_dir: Optional[Union[str, Path]] = None,
    ):
        self.narrator = narrator
        self.renderer = renderer or TextCardRenderer()
        self.assembler = assembler or VideoAssembler()
        self.videos_dir = Path(videos_dir or settings.paths.videos)
        self.temp_dir = Path(temp_dir) if temp_dir else self.videos_dir / "temp"

    def produce(self, item: ContentItem) -> ArtifactHandle:
        run_id = uuid.uuid4().hex[:8]
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.videos_dir.mkdir(parents=True, exist_ok=True)

        audio_path = self.temp_dir / f"{run_id}_audio.mp3"
        image_path = self.temp_dir / f"{run_id}_image.png"
        video_path = self.videos_dir / f"video-{_safe_name(item.id)}-{timestamp}.mp4"

        logger.info("[%s] Creating video for perla %s", run_id, item.id)

        text = sanitize_text(item.text)
        step = "narration"
        try:
            if not text:
                raise ValueError("perla has no speakable text after cleaning")

            self.narrator.synthesize(text, str(audio_path))
            if not audio_path.is_file():
                raise RuntimeError("narration produced no audio file")

            step = "render"
            self.renderer.render(text, str(image_path))

            step = "compose"
            result = self.assembler.compose(str(image_path), str(audio_path), str(video_path))

        except ConfigurationError:
            self._cleanup([audio_path, image_path, video_path])
            raise
        except Exception as exc:
            logger.error("[%s] %s step failed for %s: %s", run_id, step, item.id, exc)
            self._cleanup([audio_path, image_path, video_path])
            raise ProductionFailed(f"{step} failed: {exc}", step=step) from exc

        self._cleanup([audio_path, image_path])

        artifact = ArtifactHandle(
            perla_id=item.id,
            video_path=str(video_path),
            duration=result.get("duration"),
            file_size_mb=result.get("file_size_mb"),
            resolution=result.get("resolution", ""),
        )
        logger.info("[%s] Video ready: %s", run_id, video_path)
        return artifact

    @staticmethod
    def _cleanup(paths: List[Path]) -> None:
        for path in paths:
            try:
                if path.exists():
                    path.unlink()
                    logger.debug("Cleaned up: %s", path.name)
            except OSError as exc:
                logger.warning("Could not remove %s: %s", path, exc)
