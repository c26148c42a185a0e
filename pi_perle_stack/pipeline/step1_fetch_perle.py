#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Step 1: Fetch Perle
===================
Fetches perle from the configured source (page or sheet) and merges the new
ones into the content database. Nothing is rendered or published.

Usage:
    python -m pi_perle_stack.pipeline.step1_fetch_perle [--source page|sheet]
"""

import argparse
import json
import logging
from datetime import datetime
from typing import Optional

from pi_perle_stack.config.logging_config import configure_logging
from pi_perle_stack.pipeline.wiring import SOURCES, build_source, build_store

logger = logging.getLogger("pipeline.fetch")


def main(source: Optional[str] = None) -> dict:
    """
    Fetch and store perle.

    Args:
        source: 'page' or 'sheet' (defaults to PERLE_SOURCE)

    Returns:
        dict with counts
    """
    adapter = build_source(source)
    store = build_store()

    logger.info("=== Step 1: Fetch Perle (source: %s) ===", adapter.name)

    perle = adapter.fetch()
    added = store.merge(perle)
    stats = store.stats()

    result = {
        "source": adapter.name,
        "fetched": len(perle),
        "added": added,
        "total": stats["total"],
        "unpublished": stats["unpublished"],
        "timestamp": datetime.now().isoformat(),
    }
    logger.info(
        "Fetch complete: %d fetched, %d new, %d unpublished",
        len(perle),
        added,
        stats["unpublished"],
    )
    print(json.dumps(result, ensure_ascii=False))
    return result


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fetch perle into the content database")
    parser.add_argument("--source", choices=sorted(SOURCES), default=None)
    args = parser.parse_args()
    configure_logging()
    main(source=args.source)
