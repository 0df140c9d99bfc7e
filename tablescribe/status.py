"""Batch status: reads the run state store and output folder for display.

Pure logic module: no console output, no writes.  The CLI prints what
``get_run_status`` returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from tablescribe.models import ProcessingRecord, ProcessingStatus, RunStats
from tablescribe.output_paths import INTERNAL_DIRNAME, TRANSCRIPT_SUFFIX, OutputPaths
from tablescribe.state import RunStateStore


@dataclass
class FileStatusInfo:
    """Latest known state of one input file."""

    file_name: str
    speaker: str
    status: ProcessingStatus
    attempts: int
    last_error: str = ""


@dataclass
class RunStatus:
    output_dir: Path
    stats: RunStats
    files: list[FileStatusInfo] = field(default_factory=list)
    transcript_count: int = 0
    speaker_count: int = 0
    has_merged: bool = False

    @property
    def pending_errors(self) -> list[FileStatusInfo]:
        """Files whose attempts have all failed."""
        return [f for f in self.files if f.status == ProcessingStatus.ERROR]


def resolve_output_dir(project_dir: Path) -> Path | None:
    """Find the output directory from an input dir or output dir path.

    Accepts the output folder itself, or an input folder whose sibling
    ``transcriptions/`` folder holds a previous run.
    """
    if (project_dir / INTERNAL_DIRNAME).is_dir():
        return project_dir
    sibling = project_dir.resolve().parent / "transcriptions"
    if (sibling / INTERNAL_DIRNAME).is_dir():
        return sibling
    return None


def _summarise(records: list[ProcessingRecord]) -> list[FileStatusInfo]:
    by_name: dict[str, list[ProcessingRecord]] = {}
    for r in records:
        by_name.setdefault(r.file_name, []).append(r)

    files: list[FileStatusInfo] = []
    for name in sorted(by_name):
        attempts = by_name[name]
        succeeded = any(r.status == ProcessingStatus.SUCCESS for r in attempts)
        last = attempts[-1]
        files.append(FileStatusInfo(
            file_name=name,
            speaker=last.speaker_label,
            status=ProcessingStatus.SUCCESS if succeeded else ProcessingStatus.ERROR,
            attempts=len(attempts),
            last_error="" if succeeded else last.error_message,
        ))
    return files


def get_run_status(output_dir: Path) -> RunStatus | None:
    """Read the state store under *output_dir*; ``None`` if there isn't one."""
    paths = OutputPaths(output_dir)
    if not paths.state_file.exists():
        return None

    store = RunStateStore(paths.state_file)
    records = store.records()

    transcripts = (
        list(paths.transcripts_dir.glob(f"*{TRANSCRIPT_SUFFIX}"))
        if paths.transcripts_dir.is_dir()
        else []
    )
    speakers = (
        list(paths.speakers_dir.glob(f"*{TRANSCRIPT_SUFFIX}"))
        if paths.speakers_dir.is_dir()
        else []
    )

    return RunStatus(
        output_dir=output_dir,
        stats=store.stats(),
        files=_summarise(records),
        transcript_count=len(transcripts),
        speaker_count=len(speakers),
        has_merged=paths.merged_transcript.exists(),
    )
