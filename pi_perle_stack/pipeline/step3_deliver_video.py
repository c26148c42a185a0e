#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Step 3: Deliver Video
=====================
Hands an already rendered video to the delivery channel and, on success,
marks the perla as published. This is the manual recovery path for videos
kept on disk after a failed delivery.

Usage:
    python -m pi_perle_stack.pipeline.step3_deliver_video --perla-id <ID> --video <PATH>
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Optional

from pi_perle_stack.config.logging_config import configure_logging
from pi_perle_stack.config.settings import settings
from pi_perle_stack.database.models import ArtifactHandle
from pi_perle_stack.errors import DeliveryRejected
from pi_perle_stack.pipeline.wiring import CHANNELS, build_channel, build_store
from pi_perle_stack.services.captions import build_caption

logger = logging.getLogger("pipeline.deliver")


def main(perla_id: str, video_path: str, channel: Optional[str] = None) -> dict:
    """
    Deliver a rendered perla video.

    Args:
        perla_id: id of the stored perla the video belongs to
        video_path: path to the .mp4 file
        channel: 'telegram', 'buffer' or 'mattermost' (defaults to PERLE_CHANNEL)

    Returns:
        dict with status and delivery reference
    """
    store = build_store()
    item = store.get(perla_id)
    if item is None:
        raise ValueError(f"Perla not found: {perla_id}")
    if not Path(video_path).is_file():
        raise FileNotFoundError(f"Video file missing: {video_path}")

    target = build_channel(channel)
    logger.info("=== Step 3: Deliver Video (%s via %s) ===", perla_id, target.name)

    if item.published:
        logger.warning("Perla %s is already published (%s)", perla_id, item.delivery_reference)

    artifact = ArtifactHandle(perla_id=perla_id, video_path=video_path)
    delivery = target.deliver(artifact, build_caption(settings.delivery.hashtags), item)
    if not delivery.success:
        raise DeliveryRejected(f"{target.name} rejected {perla_id}: {delivery.message}")

    reference = delivery.reference or f"{target.name}:{perla_id}"
    store.mark_published(perla_id, reference)

    result = {
        "perla_id": perla_id,
        "channel": target.name,
        "success": True,
        "delivery_reference": reference,
    }
    logger.info("Delivered: %s", reference)
    print(json.dumps(result, ensure_ascii=False))
    return result


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Deliver a rendered perla video")
    parser.add_argument("--perla-id", required=True, help="Stored perla id")
    parser.add_argument("--video", required=True, help="Path to the .mp4 file")
    parser.add_argument("--channel", choices=sorted(CHANNELS), default=None)
    args = parser.parse_args()
    configure_logging()
    main(perla_id=args.perla_id, video_path=args.video, channel=args.channel)
