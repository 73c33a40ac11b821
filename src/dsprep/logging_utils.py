"""Logging setup shared by the CLI and scripts."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logging(log_file: Optional[Path] = None, *, level: str = "INFO") -> None:
    """Configure loguru sinks: stderr always, plus a rotating file if given."""
    logger.remove()
    logger.add(sys.stderr, level=level)

    if log_file is not None:
        log_file = Path(log_file).expanduser().resolve()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            rotation="10 MB",
            backtrace=False,
            diagnose=False,
        )
