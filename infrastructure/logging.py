"""
Logging configuration for stdout and file output.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


def setup_logging(
    log_dir: Optional[Union[Path, str]] = None,
    level: Union[int, str] = logging.INFO,
) -> Optional[Path]:
    """
    Configure the root logger with a stdout handler and, when `log_dir` is
    given, a file named after the start time (e.g. logs/2026-01-31_14-30-00.log).

    Returns the log file path if one was created, None otherwise.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)

    # repeated calls must not stack handlers
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    # discord.py is chatty at INFO
    logging.getLogger("discord").setLevel(max(root_logger.level, logging.WARNING))

    if log_dir is not None:
        dir_path = Path(log_dir)
        dir_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(tz=timezone.utc).strftime(LOG_FILE_TIMESTAMP_FORMAT)
        file_path = dir_path / f"{timestamp}.log"
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        return file_path

    return None
