"""Application-wide logging configuration utilities."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_CONFIGURED = False


def configure_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> None:
    """Configure the root logger for the ledger service.

    Parameters
    ----------
    level:
        Minimum level for the root logger, as a number or a name such as
        ``"DEBUG"``.
    log_file:
        Optional path of a UTF-8 log file written alongside standard error.
    """

    global _CONFIGURED

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if _CONFIGURED:
        return

    formatter = logging.Formatter(LOG_FORMAT)
    if not any(isinstance(handler, logging.StreamHandler) for handler in root_logger.handlers):
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        already_configured = any(
            isinstance(handler, logging.FileHandler)
            and getattr(handler, "baseFilename", None) == str(log_path.resolve())
            for handler in root_logger.handlers
        )
        if not already_configured:
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

    # googleapiclient logs every discovery lookup at INFO
    logging.getLogger("googleapiclient.discovery").setLevel(logging.WARNING)

    _CONFIGURED = True
    root_logger.debug("Logging configured at level %s", logging.getLevelName(level))
