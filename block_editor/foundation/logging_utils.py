"""Operational logging setup for editing sessions."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_operational_logger(
    log_dir: str | None,
    session_id: str,
    *,
    level: int | str = logging.INFO,
) -> tuple[logging.Logger, str | None]:
    """
    Configure the logger for one editing session.

    Logs go to stderr at `level` and, when `log_dir` is given, to a UTF-8 file
    `<session_id>_oplog.log` at DEBUG.
    """

    logger = logging.getLogger(f"block_editor.{session_id}")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_file: str | None = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{session_id}_oplog.log")
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    logger.debug("Operational logging initialized for session %s", session_id)
    if log_file:
        logger.debug("Operational log file: %s", log_file)

    return logger, log_file
