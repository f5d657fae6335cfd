"""Loguru sink configuration."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from medgraph.utils.config import LoggingConfig

TEXT_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> | <level>{message}</level>"
)


def setup_logging(config: Optional[LoggingConfig] = None, *, verbose: bool = False) -> None:
    """Replace loguru's default sink with the configured stderr/file sinks.

    ``MEDGRAPH_LOG_LEVEL`` overrides the configured level; ``verbose`` forces
    DEBUG.
    """
    config = config or LoggingConfig()
    level = "DEBUG" if verbose else os.getenv("MEDGRAPH_LOG_LEVEL", config.level).upper()
    serialize = config.format == "json"

    logger.remove()
    if serialize:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=TEXT_FORMAT)

    if config.file:
        target = Path(config.file)
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(target),
            level=level,
            rotation=config.rotation,
            retention=config.retention,
            serialize=serialize,
        )
