"""Run state store: an append-only CSV of per-file processing attempts.

The store lives at ``<output_dir>/.tablescribe/processing_state.csv``.  One
row is appended after every attempt (successful or not), and rows are never
rewritten during normal operation, so a killed batch can be resumed by
simply running it again: files with a ``Success`` row are skipped.

Force re-runs append a second row for the same file.  Any ``Success`` row
is enough to mark a file processed.

The column layout is fixed (``STATE_COLUMNS``, schema version
``STATE_SCHEMA_VERSION``).  A store written with a different header raises
``StateSchemaError`` unless the store is opened with ``force_schema=True``,
which migrates the file to the current header (keeping a ``.bak`` copy).
"""

from __future__ import annotations

import csv
import logging
import os
import shutil
from pathlib import Path

from tablescribe.models import ProcessingRecord, ProcessingStatus, RunStats

logger = logging.getLogger(__name__)

STATE_SCHEMA_VERSION = 1

STATE_COLUMNS: tuple[str, ...] = (
    "FileName",
    "FileSize",
    "ProcessingTime",
    "Status",
    "Timestamp",
    "PlayerName",
    "ErrorMessage",
)


class StateSchemaError(RuntimeError):
    """The state file's header does not match ``STATE_COLUMNS``."""

    def __init__(self, path: Path, found: list[str]) -> None:
        self.path = path
        self.found = found
        super().__init__(
            f"{path} has columns {found}, expected {list(STATE_COLUMNS)} "
            f"(schema v{STATE_SCHEMA_VERSION}); rerun with --force-schema to migrate it"
        )


class StateWriteError(RuntimeError):
    """A record could not be appended to the state file."""


def _to_row(record: ProcessingRecord) -> list[str]:
    return [
        record.file_name,
        str(record.file_size_bytes),
        f"{record.processing_time_seconds:.2f}",
        record.status.value,
        record.timestamp,
        record.speaker_label,
        record.error_message,
    ]


def _int_or_zero(value: str | None) -> int:
    try:
        return int(value or 0)
    except ValueError:
        return 0


def _float_or_zero(value: str | None) -> float:
    try:
        return float(value or 0)
    except ValueError:
        return 0.0


def _from_row(row: dict[str, str]) -> ProcessingRecord:
    try:
        status = ProcessingStatus(row.get("Status") or "")
    except ValueError:
        status = ProcessingStatus.ERROR
    return ProcessingRecord(
        file_name=row.get("FileName") or "",
        file_size_bytes=_int_or_zero(row.get("FileSize")),
        processing_time_seconds=_float_or_zero(row.get("ProcessingTime")),
        status=status,
        timestamp=row.get("Timestamp") or "",
        speaker_label=row.get("PlayerName") or "",
        error_message=row.get("ErrorMessage") or "",
    )


class RunStateStore:
    """Durable record of which input files have been processed."""

    def __init__(self, path: Path, *, force_schema: bool = False) -> None:
        self.path = path
        self.force_schema = force_schema
        self._schema_checked = False

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _read_header(self) -> list[str] | None:
        if not self.path.exists() or self.path.stat().st_size == 0:
            return None
        with self.path.open(newline="", encoding="utf-8") as fh:
            return next(csv.reader(fh), None)

    def _ensure_schema(self) -> None:
        if self._schema_checked:
            return
        header = self._read_header()
        if header is not None and tuple(header) != STATE_COLUMNS:
            if not self.force_schema:
                raise StateSchemaError(self.path, header)
            self._migrate()
        self._schema_checked = True

    def _migrate(self) -> None:
        """Rewrite the store under ``STATE_COLUMNS``, matching columns by name."""
        backup = self.path.with_name(self.path.name + ".bak")
        shutil.copy2(self.path, backup)
        with self.path.open(newline="", encoding="utf-8") as fh:
            old_rows = list(csv.DictReader(fh))
        tmp = self.path.with_suffix(".tmp")
        with tmp.open("w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            writer.writerow(STATE_COLUMNS)
            for row in old_rows:
                writer.writerow([row.get(col) or "" for col in STATE_COLUMNS])
        tmp.replace(self.path)
        logger.warning(
            "Migrated %s to schema v%d (%d rows, backup at %s)",
            self.path.name,
            STATE_SCHEMA_VERSION,
            len(old_rows),
            backup.name,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def records(self) -> list[ProcessingRecord]:
        """All records in append order."""
        self._ensure_schema()
        if not self.path.exists():
            return []
        with self.path.open(newline="", encoding="utf-8") as fh:
            return [_from_row(row) for row in csv.DictReader(fh) if row.get("FileName")]

    def is_processed(self, file_name: str) -> bool:
        """True if any record for *file_name* has status Success."""
        return any(
            r.file_name == file_name and r.status == ProcessingStatus.SUCCESS
            for r in self.records()
        )

    def latest(self, file_name: str) -> ProcessingRecord | None:
        """The most recently appended record for *file_name*, if any."""
        matches = [r for r in self.records() if r.file_name == file_name]
        return matches[-1] if matches else None

    def stats(self) -> RunStats:
        """Totals over every record in the store."""
        records = self.records()
        total_duration = sum(r.processing_time_seconds for r in records)
        return RunStats(
            total_files=len(records),
            success_count=sum(1 for r in records if r.status == ProcessingStatus.SUCCESS),
            error_count=sum(1 for r in records if r.status == ProcessingStatus.ERROR),
            total_duration_seconds=total_duration,
            average_duration_seconds=total_duration / len(records) if records else 0.0,
            total_size_bytes=sum(r.file_size_bytes for r in records),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _ends_with_newline(self) -> bool:
        with self.path.open("rb") as fh:
            fh.seek(-1, os.SEEK_END)
            return fh.read(1) == b"\n"

    def record(self, record: ProcessingRecord) -> None:
        """Append *record*, creating the file (with header) on first write."""
        self._ensure_schema()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            is_new = not self.path.exists() or self.path.stat().st_size == 0
            torn = not is_new and not self._ends_with_newline()
            with self.path.open("a", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh)
                if is_new:
                    writer.writerow(STATE_COLUMNS)
                elif torn:
                    # A killed run left a partial last row; start a fresh line.
                    logger.warning("%s ends mid-row; starting a new line", self.path.name)
                    fh.write("\n")
                writer.writerow(_to_row(record))
                fh.flush()
                os.fsync(fh.fileno())
        except OSError as exc:
            raise StateWriteError(f"Could not append to {self.path}: {exc}") from exc
        logger.debug("Recorded %s: %s", record.file_name, record.status.value)
