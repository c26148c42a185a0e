# -*- coding: utf-8 -*-
"""
Text Card Renderer
==================
Draws a perla as a 9:16 chat-bubble card (PNG) with Pillow:
  - beige chat background with faint stripes
  - green header with site title + subtitle
  - rounded light-green bubble holding the word-wrapped perla
  - time stamp footer
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from PIL import Image, ImageDraw, ImageFont

from pi_perle_stack.config.settings import VideoConfig, settings

logger = logging.getLogger("perle.renderer")

BASE_WIDTH = 1080


def wrap_words(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """
    Greedy word wrap.

    Words are packed onto a line while the measured width stays within
    `max_width`. A word wider than `max_width` on its own still gets a
    line to itself; words are never split.
    """
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and measure(candidate) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def load_font(name: str, size: int) -> ImageFont.ImageFont:
    """TrueType font by file/family name, falling back to Pillow's default."""
    for candidate in (name, "DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arial.ttf"):
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    logger.warning("No TrueType font found for %r, using Pillow default", name)
    return ImageFont.load_default(size=size)


class TextCardRenderer:
    """Renders the still frame used for a perla video."""

    def __init__(self, cfg: Optional[VideoConfig] = None):
        self.cfg = cfg or settings.video
        self.width = self.cfg.width
        self.height = self.cfg.height
        self.scale = self.width / BASE_WIDTH

    def _px(self, value: float) -> int:
        return int(round(value * self.scale))

    # ================================================================
    # Main render
    # ================================================================

    def render(self, text: str, output_path: str, now: Optional[datetime] = None) -> str:
        """Draw the card for `text` and save it as PNG at `output_path`."""
        cfg = self.cfg
        image = Image.new("RGB", (self.width, self.height), cfg.background_color)
        draw = ImageDraw.Draw(image)

        # Stripes
        stripe = self._px(30)
        for y in range(0, self.height, stripe * 2):
            draw.rectangle([0, y, self.width, y + stripe], fill="#E3DCD3")

        # Header
        header_h = self._px(250)
        draw.rectangle([0, 0, self.width, header_h], fill=cfg.header_color)
        draw.text(
            (self.width / 2, self._px(130)),
            cfg.header_title,
            font=load_font(cfg.font, self._px(70)),
            fill="#FFFFFF",
            anchor="mm",
        )
        draw.text(
            (self.width / 2, self._px(200)),
            cfg.header_subtitle,
            font=load_font(cfg.font, self._px(45)),
            fill="#E8F5E9",
            anchor="mm",
        )

        # Bubble
        margin = self._px(80)
        bubble_top = self._px(280)
        bubble_bottom = self.height - self._px(200)
        draw.rounded_rectangle(
            [margin, bubble_top, self.width - margin, bubble_bottom],
            radius=self._px(20),
            fill=cfg.bubble_color,
        )

        # Perla text, shrinking the font until it fits the bubble
        max_width = self.width - self._px(200)
        max_height = (bubble_bottom - bubble_top) - self._px(80)
        lines, font, line_height = self._fit_text(draw, text, max_width, max_height)

        total_height = len(lines) * line_height
        y = bubble_top + ((bubble_bottom - bubble_top) - total_height) / 2
        for line in lines:
            draw.text(
                (self.width / 2, y),
                line,
                font=font,
                fill=cfg.text_color,
                anchor="ma",
            )
            y += line_height

        # Footer time stamp
        now = now or datetime.now()
        draw.text(
            (self.width - self._px(150), self.height - self._px(80)),
            now.strftime("%H:%M"),
            font=load_font(cfg.font, self._px(32)),
            fill=cfg.header_color,
            anchor="mm",
        )

        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        image.save(out, format="PNG")
        logger.info("Text card created: %s (%d lines)", out.name, len(lines))
        return str(out)

    def _fit_text(self, draw: ImageDraw.ImageDraw, text: str, max_width: int, max_height: int):
        size = self._px(self.cfg.font_size)
        min_size = self._px(self.cfg.min_font_size)
        while True:
            font = load_font(self.cfg.font, size)
            line_height = int(size * 1.45)
            lines = wrap_words(
                text, max_width, lambda s: draw.textlength(s, font=font)
            )
            if len(lines) * line_height <= max_height or size <= min_size:
                return lines, font, line_height
            size = max(min_size, size - 4)
