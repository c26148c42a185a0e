# -*- coding: utf-8 -*-
"""
Video Assembler Service
=======================
Composes vertical perla videos (1080x1920) using FFmpeg:
  - Loops the rendered text card as the video track
  - Lays the narration under it
  - Length follows the narration (plus a short tail), capped
  - Exports final .mp4 (H.264 / AAC, yuv420p, faststart)
"""

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from pi_perle_stack.config.settings import VideoConfig, settings

logger = logging.getLogger("perle.assembler")

FFMPEG_TIMEOUT = 600


class VideoAssembler:
    """FFmpeg-based still-image + narration composer."""

    def __init__(self, cfg: Optional[VideoConfig] = None, ffmpeg: str = "ffmpeg", ffprobe: str = "ffprobe"):
        self.cfg = cfg or settings.video
        self.width = self.cfg.width
        self.height = self.cfg.height
        self.fps = self.cfg.fps
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe

    # ================================================================
    # Composition
    # ================================================================

    def compose(self, image_path: str, audio_path: str, output_path: str) -> Dict[str, Any]:
        """
        Build the final video from one still image and one audio track.

        Returns:
            dict with output_path, duration, file_size_mb, resolution, fps
        """
        audio_duration = self._get_duration(audio_path)
        duration: Optional[float] = None
        if audio_duration:
            duration = min(audio_duration + self.cfg.tail_seconds, float(self.cfg.max_duration))
            logger.info(
                "Target duration: %.1fs (narration: %.1fs)", duration, audio_duration
            )
        else:
            logger.warning("Narration length unknown, falling back to -shortest")

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        cmd = self._build_command(image_path, audio_path, output_path, duration)

        logger.info("Composing video → %s", Path(output_path).name)
        self._run_ffmpeg(cmd, "compose")

        out = Path(output_path)
        if not out.is_file() or out.stat().st_size == 0:
            raise RuntimeError(f"FFmpeg produced no output at {output_path}")

        info = self._get_media_info(output_path)
        result = {
            "output_path": str(out),
            "duration": info.get("duration", duration),
            "file_size_mb": round(out.stat().st_size / (1024 * 1024), 2),
            "resolution": f"{self.width}x{self.height}",
            "fps": self.fps,
        }
        logger.info(
            "Video ready: %s (%s, %.1fMB)",
            out.name,
            f"{result['duration']:.1f}s" if result["duration"] else "?s",
            result["file_size_mb"],
        )
        return result

    def _build_command(
        self,
        image_path: str,
        audio_path: str,
        output_path: str,
        duration: Optional[float],
    ) -> List[str]:
        vf = (
            f"scale={self.width}:{self.height}:force_original_aspect_ratio=decrease,"
            f"pad={self.width}:{self.height}:(ow-iw)/2:(oh-ih)/2,"
            f"setsar=1,fps={self.fps}"
        )
        # apad never ends, so it is only safe with an explicit -t
        af = "apad" if duration else "anull"
        cmd = [
            self.ffmpeg,
            "-y",
            "-loop",
            "1",
            "-framerate",
            str(self.fps),
            "-i",
            image_path,
            "-i",
            audio_path,
            "-filter_complex",
            f"[0:v]{vf}[v];[1:a]{af}[a]",
            "-map",
            "[v]",
            "-map",
            "[a]",
            "-c:v",
            "libx264",
            "-tune",
            "stillimage",
            "-preset",
            "medium",
            "-crf",
            "23",
            "-c:a",
            "aac",
            "-b:a",
            "192k",
            "-ar",
            "44100",
            "-pix_fmt",
            "yuv420p",
            "-r",
            str(self.fps),
            "-movflags",
            "+faststart",
        ]
        if duration:
            cmd += ["-t", f"{duration:.2f}"]
        else:
            cmd.append("-shortest")
        cmd.append(output_path)
        return cmd

    # ================================================================
    # Utility methods
    # ================================================================

    def _run_ffmpeg(self, cmd: List[str], step_name: str) -> subprocess.CompletedProcess:
        """Run an FFmpeg command with error handling."""
        logger.debug("FFmpeg [%s]: %s", step_name, " ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=FFMPEG_TIMEOUT,
            )
        except subprocess.TimeoutExpired as exc:
            logger.error("FFmpeg [%s] timed out after %ds", step_name, FFMPEG_TIMEOUT)
            raise RuntimeError(f"FFmpeg {step_name} timed out") from exc
        except FileNotFoundError as exc:
            raise RuntimeError(f"FFmpeg binary not found: {cmd[0]}") from exc

        if result.returncode != 0:
            logger.error(
                "FFmpeg [%s] failed (code %d):\n%s",
                step_name,
                result.returncode,
                result.stderr[-2000:],
            )
            raise RuntimeError(f"FFmpeg {step_name} failed: {result.stderr[-500:]}")
        return result

    def _get_duration(self, file_path: str) -> Optional[float]:
        """Media duration in seconds via ffprobe, None when unknown."""
        info = self._get_media_info(file_path)
        return info.get("duration") or None

    def _get_media_info(self, file_path: str) -> Dict[str, Any]:
        """Get media info (duration, width, height) via ffprobe."""
        cmd = [
            self.ffprobe,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            file_path,
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=30)
            data = json.loads(result.stdout)

            info: Dict[str, Any] = {}
            if "format" in data:
                info["duration"] = float(data["format"].get("duration", 0))

            for stream in data.get("streams", []):
                if stream.get("codec_type") == "video":
                    info["width"] = stream.get("width", 0)
                    info["height"] = stream.get("height", 0)
                    info["codec"] = stream.get("codec_name", "unknown")
                    break

            return info
        except (OSError, ValueError, subprocess.TimeoutExpired) as e:
            logger.warning("Could not get media info for %s: %s", file_path, e)
            return {}
