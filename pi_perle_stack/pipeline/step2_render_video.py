#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Step 2: Render Video
====================
Produces the video for one perla (narration + text card + FFmpeg) without
delivering it. Useful to preview the output or to re-render by hand.

Usage:
    python -m pi_perle_stack.pipeline.step2_render_video --perla-id <ID>
    python -m pi_perle_stack.pipeline.step2_render_video --text "Buongiorno a tutti..."
"""

import argparse
import json
import logging
from typing import Optional

from pi_perle_stack.config.logging_config import configure_logging
from pi_perle_stack.database.models import ContentItem
from pi_perle_stack.pipeline.wiring import build_producer, build_store

logger = logging.getLogger("pipeline.render")


def main(perla_id: Optional[str] = None, text: Optional[str] = None) -> dict:
    """
    Render one perla to video.

    Args:
        perla_id: id of a stored perla
        text: free text to render instead of a stored perla

    Returns:
        dict with perla_id, video_path, duration
    """
    if perla_id:
        item = build_store().get(perla_id)
        if item is None:
            raise ValueError(f"Perla not found: {perla_id}")
    elif text:
        item = ContentItem.from_text(text)
    else:
        raise ValueError("Either perla_id or text is required")

    logger.info("=== Step 2: Render Video (%s) ===", item.id)

    artifact = build_producer().produce(item)
    output = artifact.model_dump()
    print(json.dumps(output, ensure_ascii=False))
    return output


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Render a perla video")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--perla-id", help="Stored perla id")
    group.add_argument("--text", help="Free text to render")
    args = parser.parse_args()
    configure_logging()
    main(perla_id=args.perla_id, text=args.text)
