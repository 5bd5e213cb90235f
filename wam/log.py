#===============================================================================
#  WAM_Web_App_Manager | log.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  loguru sinks: colored console output plus a rotating file under
#  <data_dir>/logs. Call once from the entry point.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import sys
from typing import Optional

from loguru import logger

from .config import WamConfig

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(config: Optional[WamConfig] = None, debug: bool = False) -> None:
    """Replace loguru's default handler with our console + file sinks."""
    level = "DEBUG" if debug else (config.log_level if config else "INFO")

    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if config is None:
        return

    config.logs_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        config.logs_dir / "wam_{time:YYYY-MM-DD}.log",
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="00:00",
        retention="7 days",
        backtrace=True,
    )
    logger.debug("Logging initialized (level={})", level)
