# =============================================================================
# Logging Setup
# =============================================================================
# Every module logs through `logging.getLogger(__name__)`. This module wires
# the handlers once at startup:
#   - Console handler (WARNING and above unless --debug)
#   - Rotating file handler in the XDG state directory
#
# Records may carry a structured payload (account id, batch size, ...) in
# `extra={"payload": {...}}`. PayloadFormatter renders it as JSON after the
# message so log lines stay greppable by account or operation.
#
#     logger.info("Loading messages", extra=payload(account_id="a1", folder="inbox"))
#     -> 2026-10-19 10:00:00 - kestrel.storage.store - INFO - Loading messages {"account_id": "a1", "folder": "inbox"}
# =============================================================================

import json
import logging
import logging.handlers
from pathlib import Path
from typing import Any

# Maximum log file size (10 MB)
MAX_LOG_SIZE = 10 * 1024 * 1024

# Number of backup log files to keep
BACKUP_COUNT = 5

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SIMPLE_FORMAT = "%(levelname)s - %(message)s"


def payload(**fields: Any) -> dict[str, dict[str, Any]]:
    """
    Build the `extra` mapping for a structured log record.

    Example:
        >>> logger.info("Moved messages", extra=payload(count=3, folder="trash"))
    """
    return {"payload": fields}


class PayloadFormatter(logging.Formatter):
    """Formatter that appends a record's structured payload as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        data = getattr(record, "payload", None)
        if data:
            text = f"{text} {json.dumps(data, default=str, sort_keys=True)}"
        return text


def setup_logging(debug: bool = False, log_file: Path | None = None) -> None:
    """
    Configure logging for the application.

    Args:
        debug: If True, sets log level to DEBUG and echoes everything to the
               console. Otherwise INFO to file, WARNING to console.
        log_file: Path of the rotating log file. No file handler if None.
    """
    log_level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_file),
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            PayloadFormatter(fmt=DETAILED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    console_handler.setFormatter(PayloadFormatter(fmt=SIMPLE_FORMAT))
    root_logger.addHandler(console_handler)

    # aiosmtplib and keyring backends are chatty at DEBUG
    logging.getLogger("aiosmtplib").setLevel(logging.WARNING)
    logging.getLogger("keyring").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging configured (level={logging.getLevelName(log_level)}, file={log_file})"
    )
