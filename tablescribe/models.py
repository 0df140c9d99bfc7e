"""Data models shared across pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Segment(BaseModel):
    """One timestamped utterance.

    ``start`` and ``end`` are kept exactly as the engine wrote them (whisper
    TSV uses integer milliseconds).  They are only interpreted as numbers when
    transcripts are merged.
    """

    model_config = ConfigDict(frozen=True)

    speaker: str
    start: str
    end: str
    text: str


class ProcessingStatus(str, Enum):
    """Outcome of one processing attempt, as stored in the state file."""

    SUCCESS = "Success"
    ERROR = "Error"


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")


class ProcessingRecord(BaseModel):
    """One row of the run state store, written once per attempt."""

    file_name: str
    file_size_bytes: int = 0
    processing_time_seconds: float = 0.0
    status: ProcessingStatus
    timestamp: str = Field(default_factory=_now_iso)
    speaker_label: str = ""
    error_message: str = ""


class FileState(str, Enum):
    """Per-file state in the batch orchestrator."""

    PENDING = "pending"
    SKIPPED = "skipped"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ProcessResult:
    """Result of normalizing one raw engine output file."""

    ok: bool
    source: str
    speaker: str = ""
    output_path: Path | None = None
    segments_in: int = 0
    segments_dropped: int = 0
    segments_out: int = 0
    error: str = ""


@dataclass
class FileOutcome:
    """What happened to one input file during a batch run."""

    file_name: str
    state: FileState
    speaker: str = ""
    elapsed_seconds: float = 0.0
    error: str = ""


@dataclass
class TimelineRow:
    """A normalized transcript row with its start time parsed for sorting."""

    speaker: str
    start: int
    end: str
    text: str

    def to_tsv(self) -> str:
        return f"{self.speaker}\t{self.start}\t{self.end}\t{self.text}"


@dataclass
class AggregateTranscript:
    """Merged view over every normalized per-file transcript.

    Always recomputed from disk; never treated as authoritative state.
    """

    rows: list[TimelineRow] = field(default_factory=list)
    by_speaker: dict[str, list[TimelineRow]] = field(default_factory=dict)
    source_files: list[str] = field(default_factory=list)


@dataclass
class RunStats:
    """Totals computed by scanning the run state store."""

    total_files: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration_seconds: float = 0.0
    average_duration_seconds: float = 0.0
    total_size_bytes: int = 0


@dataclass
class BatchResult:
    """Everything a batch run produced, for the CLI summary."""

    output_dir: Path
    outcomes: list[FileOutcome] = field(default_factory=list)
    aggregate: AggregateTranscript | None = None
    aggregation_error: str = ""
    stats: RunStats | None = None
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.state == FileState.SUCCEEDED]

    @property
    def failed(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.state == FileState.FAILED]

    @property
    def skipped(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.state == FileState.SKIPPED]
