"""Persistent log file, CSV log store and terminal logging configuration.

Three handlers on the root logger:

- **terminal** (stderr): WARNING by default, DEBUG with ``-v`` / ``--verbose``.
- **log file** at ``<output_dir>/.tablescribe/tablescribe.log``, rotated.
  Level comes from ``TABLESCRIBE_LOG_LEVEL`` (default INFO).
- **log store** at ``<output_dir>/.tablescribe/processing_log.csv``: one
  ``Timestamp,Level,Message`` row per INFO/WARNING/ERROR record, appended
  across runs so a batch history survives restarts.
"""

from __future__ import annotations

import csv
import logging
import os
from datetime import datetime
from pathlib import Path

from tablescribe.output_paths import OutputPaths

# Max log file size before rotation (5 MB)
_MAX_BYTES = 5 * 1024 * 1024

# Number of rotated backups to keep
_BACKUP_COUNT = 2

LOG_STORE_COLUMNS = ("Timestamp", "Level", "Message")



def _parse_log_level(level_str: str) -> int:
    """Parse a log level string into a logging constant.

    Accepts standard names (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    case-insensitively.  Falls back to INFO for unrecognised values.
    """
    numeric = getattr(logging, level_str.upper(), None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def _store_level(levelno: int) -> str:
    """Collapse stdlib levels onto the three the log store knows about."""
    if levelno >= logging.ERROR:
        return "ERROR"
    if levelno >= logging.WARNING:
        return "WARNING"
    return "INFO"


class CsvLogStoreHandler(logging.Handler):
    """Append log records to a ``Timestamp,Level,Message`` CSV file.

    The file is opened per record so an interrupted run never leaves a
    half-buffered row behind.
    """

    def __init__(self, path: Path, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists() or self.path.stat().st_size == 0:
            with self.path.open("w", newline="", encoding="utf-8") as fh:
                csv.writer(fh).writerow(LOG_STORE_COLUMNS)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
            row = (timestamp, _store_level(record.levelno), record.getMessage())
            with self.path.open("a", newline="", encoding="utf-8") as fh:
                csv.writer(fh).writerow(row)
        except Exception:
            self.handleError(record)


def setup_logging(
    *,
    output_dir: Path | None = None,
    verbose: bool = False,
) -> None:
    """Configure terminal, log file and log store handlers.

    Args:
        output_dir: Batch output directory.  When ``None`` (e.g.
            ``tablescribe doctor``), only the terminal handler is configured.
        verbose: If True, the terminal handler shows DEBUG-level messages.
            Otherwise only WARNING and above reach the terminal.
    """
    root = logging.getLogger()

    # Remove any existing handlers (e.g. from a previous basicConfig call
    # or when setup_logging is called more than once in the same process)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    # The root logger must accept everything; handlers filter independently
    root.setLevel(logging.DEBUG)

    # ── Terminal handler (stderr) ──────────────────────────────────
    terminal = logging.StreamHandler()
    terminal.setLevel(logging.DEBUG if verbose else logging.WARNING)
    terminal.setFormatter(logging.Formatter("%(levelname)s | %(name)s | %(message)s"))
    root.addHandler(terminal)

    if output_dir is not None:
        paths = OutputPaths(output_dir)
        paths.internal_dir.mkdir(parents=True, exist_ok=True)

        # ── Log file handler ───────────────────────────────────────
        from logging.handlers import RotatingFileHandler

        file_level = _parse_log_level(os.environ.get("TABLESCRIBE_LOG_LEVEL", "INFO"))
        file_handler = RotatingFileHandler(
            paths.log_file,
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(file_handler)

        # ── CSV log store ──────────────────────────────────────────
        root.addHandler(CsvLogStoreHandler(paths.log_store))
