# -*- coding: utf-8 -*-
"""
Logging Setup
=============
Console output plus rotating combined/error log files under the logs dir.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from pi_perle_stack.config.settings import settings

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5

_HANDLER_MARK = "_perle_handler"


def configure_logging(level: Optional[str] = None, logs_dir: Optional[str] = None) -> None:
    """Install console + file handlers on the root logger (idempotent)."""
    root = logging.getLogger()
    root.setLevel(level or settings.log_level)

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    handlers = [console]

    log_path = Path(logs_dir or settings.paths.logs)
    try:
        log_path.mkdir(parents=True, exist_ok=True)
        combined = RotatingFileHandler(
            log_path / "combined.log",
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        combined.setFormatter(formatter)
        errors = RotatingFileHandler(
            log_path / "error.log",
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        errors.setLevel(logging.ERROR)
        errors.setFormatter(formatter)
        handlers.extend([combined, errors])
    except OSError as exc:
        logging.getLogger("perle.logging").warning(
            "File logging disabled (%s): %s", log_path, exc
        )

    for handler in handlers:
        setattr(handler, _HANDLER_MARK, True)
        root.addHandler(handler)
