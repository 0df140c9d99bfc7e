"""Tests for the logging setup (terminal + log file + CSV log store)."""

from __future__ import annotations

import csv
import logging
import os
from pathlib import Path
from unittest.mock import patch

from tablescribe.logging import (
    LOG_STORE_COLUMNS,
    CsvLogStoreHandler,
    _parse_log_level,
    _store_level,
    setup_logging,
)


def _read_store(path: Path) -> list[list[str]]:
    with path.open(newline="", encoding="utf-8") as fh:
        return list(csv.reader(fh))


class TestSetupLogging:
    """Tests for setup_logging configuration."""

    def test_terminal_only_when_no_output_dir(self) -> None:
        """Without output_dir, only the terminal handler is configured."""
        setup_logging(output_dir=None, verbose=False)

        root = logging.getLogger()
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert handler.level == logging.WARNING

    def test_terminal_verbose_sets_debug(self) -> None:
        setup_logging(output_dir=None, verbose=True)
        assert logging.getLogger().handlers[0].level == logging.DEBUG

    def test_three_handlers_with_output_dir(self, tmp_path: Path) -> None:
        """Terminal, rotating log file and CSV log store."""
        setup_logging(output_dir=tmp_path, verbose=False)

        root = logging.getLogger()
        assert len(root.handlers) == 3
        assert (tmp_path / ".tablescribe").is_dir()
        assert any(isinstance(h, CsvLogStoreHandler) for h in root.handlers)
        file_handlers = [h for h in root.handlers if hasattr(h, "baseFilename")]
        assert len(file_handlers) == 1
        assert file_handlers[0].baseFilename == str(tmp_path / ".tablescribe" / "tablescribe.log")

    def test_file_handler_default_level_is_info(self, tmp_path: Path) -> None:
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("TABLESCRIBE_LOG_LEVEL", None)
            setup_logging(output_dir=tmp_path)

            file_handler = [h for h in logging.getLogger().handlers if hasattr(h, "baseFilename")]
            assert file_handler[0].level == logging.INFO

    def test_file_handler_respects_env_var(self, tmp_path: Path) -> None:
        with patch.dict(os.environ, {"TABLESCRIBE_LOG_LEVEL": "debug"}):
            setup_logging(output_dir=tmp_path)

            file_handler = [h for h in logging.getLogger().handlers if hasattr(h, "baseFilename")]
            assert file_handler[0].level == logging.DEBUG

    def test_repeated_setup_does_not_stack_handlers(self, tmp_path: Path) -> None:
        setup_logging(output_dir=tmp_path)
        setup_logging(output_dir=tmp_path)
        assert len(logging.getLogger().handlers) == 3

    def test_messages_reach_log_file(self, tmp_path: Path) -> None:
        setup_logging(output_dir=tmp_path)
        logging.getLogger("tablescribe.test").info("hello from the batch")
        for h in logging.getLogger().handlers:
            h.flush()
        log_text = (tmp_path / ".tablescribe" / "tablescribe.log").read_text(encoding="utf-8")
        assert "hello from the batch" in log_text


class TestLogStore:
    def test_header_written_once(self, tmp_path: Path) -> None:
        path = tmp_path / "processing_log.csv"
        CsvLogStoreHandler(path)
        CsvLogStoreHandler(path)
        assert _read_store(path) == [list(LOG_STORE_COLUMNS)]

    def test_rows_appended_across_runs(self, tmp_path: Path) -> None:
        setup_logging(output_dir=tmp_path)
        logging.getLogger("tablescribe.test").warning("first run")
        setup_logging(output_dir=tmp_path)
        logging.getLogger("tablescribe.test").error("second run, with a comma")

        rows = _read_store(tmp_path / ".tablescribe" / "processing_log.csv")
        assert rows[0] == list(LOG_STORE_COLUMNS)
        assert [(r[1], r[2]) for r in rows[1:]] == [
            ("WARNING", "first run"),
            ("ERROR", "second run, with a comma"),
        ]

    def test_debug_not_stored(self, tmp_path: Path) -> None:
        setup_logging(output_dir=tmp_path, verbose=True)
        logging.getLogger("tablescribe.test").debug("noise")
        rows = _read_store(tmp_path / ".tablescribe" / "processing_log.csv")
        assert rows == [list(LOG_STORE_COLUMNS)]


class TestLevels:
    def test_parse_log_level(self) -> None:
        assert _parse_log_level("warning") == logging.WARNING
        assert _parse_log_level("nonsense") == logging.INFO

    def test_store_level_collapses(self) -> None:
        assert _store_level(logging.CRITICAL) == "ERROR"
        assert _store_level(logging.ERROR) == "ERROR"
        assert _store_level(logging.WARNING) == "WARNING"
        assert _store_level(logging.INFO) == "INFO"
