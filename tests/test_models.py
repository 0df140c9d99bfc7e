"""Tests for shared data models and the output layout."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from tablescribe.models import (
    BatchResult,
    FileOutcome,
    FileState,
    ProcessingRecord,
    ProcessingStatus,
    Segment,
    TimelineRow,
)
from tablescribe.output_paths import OutputPaths


def test_segment_is_immutable() -> None:
    seg = Segment(speaker="alice", start="0", end="10", text="hi")
    with pytest.raises(ValidationError):
        seg.text = "changed"  # type: ignore[misc]


def test_processing_record_timestamp_defaults_to_now() -> None:
    rec = ProcessingRecord(file_name="a.mp3", status=ProcessingStatus.SUCCESS)
    assert rec.timestamp.endswith("+00:00")
    assert rec.error_message == ""


def test_timeline_row_to_tsv() -> None:
    assert TimelineRow(speaker="bob", start=0, end="1000", text="hello").to_tsv() == "bob\t0\t1000\thello"


def test_batch_result_partitions() -> None:
    result = BatchResult(output_dir=Path("out"), outcomes=[
        FileOutcome(file_name="a", state=FileState.SUCCEEDED),
        FileOutcome(file_name="b", state=FileState.FAILED, error="x"),
        FileOutcome(file_name="c", state=FileState.SKIPPED),
        FileOutcome(file_name="d", state=FileState.SUCCEEDED),
    ])
    assert [o.file_name for o in result.succeeded] == ["a", "d"]
    assert [o.file_name for o in result.failed] == ["b"]
    assert [o.file_name for o in result.skipped] == ["c"]


class TestOutputPaths:
    def test_layout(self, tmp_path: Path) -> None:
        paths = OutputPaths(tmp_path)
        assert paths.merged_transcript == tmp_path / "merged_transcript.tsv"
        assert paths.state_file == tmp_path / ".tablescribe" / "processing_state.csv"
        assert paths.log_store == tmp_path / ".tablescribe" / "processing_log.csv"
        assert paths.speaker_transcript("alice") == tmp_path / "speakers" / "alice.tsv"

    def test_per_file_names(self, tmp_path: Path) -> None:
        paths = OutputPaths(tmp_path)
        assert paths.normalized_for("12-alice_7.tsv") == tmp_path / "transcripts" / "12-alice_7.tsv"
        assert paths.archived_for("12-alice_7.tsv") == tmp_path / "originals" / "12-alice_7.tsv"

    def test_ensure_dirs(self, tmp_path: Path) -> None:
        paths = OutputPaths(tmp_path / "out")
        paths.ensure_dirs()
        for d in (paths.transcripts_dir, paths.originals_dir, paths.engine_dir,
                  paths.speakers_dir, paths.internal_dir):
            assert d.is_dir()
