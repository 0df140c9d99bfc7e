"""Parse engine output and normalized transcripts into segments.

Two tab-separated formats are handled:

- **raw** (whisper ``--output_format tsv``): optional ``start`` header, then
  ``start\\tend\\ttext`` rows.
- **normalized**: ``speaker\\tstart\\tend\\ttext`` header, then one row per
  segment.  This is what the per-file processor writes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from pathlib import Path

from tablescribe.models import Segment

NORMALIZED_HEADER = "speaker\tstart\tend\ttext"

_RAW_HEADER_PREFIX = "start"


class SegmentStream:
    """A lazy, re-iterable sequence of segments.

    Each call to ``iter()`` starts again from the beginning of the source, so
    a stream built from a path re-reads the file.
    """

    def __init__(self, factory: Callable[[], Iterator[Segment]]) -> None:
        self._factory = factory

    def __iter__(self) -> Iterator[Segment]:
        return self._factory()


def _iter_lines(source: Path | Sequence[str]) -> Iterator[str]:
    if isinstance(source, Path):
        with source.open(encoding="utf-8") as fh:
            for line in fh:
                yield line.rstrip("\r\n")
    else:
        for line in source:
            yield line.rstrip("\r\n")


def _raw_segments(source: Path | Sequence[str], speaker: str) -> Iterator[Segment]:
    for line in _iter_lines(source):
        if line.startswith(_RAW_HEADER_PREFIX):
            continue
        if not line.strip():
            continue
        fields = line.split("\t")
        if len(fields) < 3:
            continue
        yield Segment(speaker=speaker, start=fields[0], end=fields[1], text=fields[2].strip())


def parse_raw_segments(source: Path | Sequence[str], speaker: str) -> SegmentStream:
    """Parse raw engine output, attaching *speaker* to every segment.

    Malformed lines (fewer than three tab-separated fields) are dropped
    silently.  ``start`` and ``end`` are copied verbatim; extra columns
    are ignored.
    """
    return SegmentStream(lambda: _raw_segments(source, speaker))


def _normalized_segments(source: Path | Sequence[str]) -> Iterator[Segment]:
    for line in _iter_lines(source):
        if line == NORMALIZED_HEADER:
            continue
        if not line.strip():
            continue
        fields = line.split("\t")
        if len(fields) < 4:
            continue
        yield Segment(speaker=fields[0], start=fields[1], end=fields[2], text=fields[3].strip())


def parse_normalized_segments(source: Path | Sequence[str]) -> SegmentStream:
    """Parse a normalized per-file transcript back into segments."""
    return SegmentStream(lambda: _normalized_segments(source))


def format_segments(segments: Iterable[Segment]) -> str:
    """Serialize segments as a normalized transcript (header included)."""
    lines = [NORMALIZED_HEADER]
    lines.extend(f"{s.speaker}\t{s.start}\t{s.end}\t{s.text}" for s in segments)
    return "\n".join(lines) + "\n"
