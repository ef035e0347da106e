# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Central loguru logger for the Script Agent.

Every module imports ``logger`` from here so sinks are configured exactly once.
"""

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Replaces the default loguru sink with a stderr sink at ``level`` and, when
    ``log_file`` is given, a rotating file sink.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_LOG_FORMAT, enqueue=False)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, level="DEBUG", rotation="5 MB", retention=3, enqueue=True)


configure_logging(os.environ.get("SCRIPT_AGENT_LOG_LEVEL", "INFO"))

__all__ = ["logger", "configure_logging"]
