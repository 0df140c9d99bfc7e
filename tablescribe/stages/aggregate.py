"""Merge normalized per-file transcripts into combined and per-speaker views."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from tablescribe.models import AggregateTranscript, TimelineRow
from tablescribe.output_paths import TRANSCRIPT_SUFFIX, OutputPaths
from tablescribe.stages.parse import NORMALIZED_HEADER

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^-?\d+$")


class AggregationError(ValueError):
    """A normalized transcript row could not be placed on the timeline."""


def read_timeline_rows(path: Path) -> list[TimelineRow]:
    """Read one normalized transcript into timeline rows.

    Header and blank lines are skipped, as are rows with fewer than four
    fields.  A non-numeric ``start`` raises ``AggregationError``: coercing
    or skipping it would silently corrupt the merged ordering.
    """
    rows: list[TimelineRow] = []
    with path.open(encoding="utf-8") as fh:
        for lineno, raw in enumerate(fh, start=1):
            line = raw.rstrip("\r\n")
            if line == NORMALIZED_HEADER or not line.strip():
                continue
            fields = line.split("\t")
            if len(fields) < 4:
                continue
            speaker, start, end, text = fields[0], fields[1], fields[2], fields[3]
            if not _INT_RE.match(start.strip()):
                raise AggregationError(
                    f"{path.name}:{lineno}: start time {start!r} is not an integer"
                )
            start_value = int(start)
            rows.append(TimelineRow(speaker=speaker, start=start_value, end=end, text=text))
    return rows


def aggregate_transcripts(transcripts_dir: Path) -> AggregateTranscript:
    """Build the merged timeline from every ``*.tsv`` in *transcripts_dir*.

    Files are read in name order and rows are stable-sorted by start time,
    so rows with equal starts keep their input order and re-running always
    yields the same result.
    """
    aggregate = AggregateTranscript()
    if not transcripts_dir.is_dir():
        return aggregate

    collected: list[TimelineRow] = []
    for path in sorted(transcripts_dir.glob(f"*{TRANSCRIPT_SUFFIX}")):
        collected.extend(read_timeline_rows(path))
        aggregate.source_files.append(path.name)

    aggregate.rows = sorted(collected, key=lambda r: r.start)
    for row in aggregate.rows:
        aggregate.by_speaker.setdefault(row.speaker, []).append(row)

    logger.info(
        "Aggregated %d rows from %d transcripts (%d speakers)",
        len(aggregate.rows),
        len(aggregate.source_files),
        len(aggregate.by_speaker),
    )
    return aggregate


def _format_rows(rows: list[TimelineRow]) -> str:
    return "\n".join([NORMALIZED_HEADER, *(r.to_tsv() for r in rows)]) + "\n"


def write_aggregate(aggregate: AggregateTranscript, paths: OutputPaths) -> list[Path]:
    """Write the merged transcript and one transcript per speaker.

    Per-speaker files left over from an earlier pass are removed first so
    the output always reflects exactly the current per-file transcripts.

    Returns:
        Every path written, merged transcript first.
    """
    paths.output_dir.mkdir(parents=True, exist_ok=True)
    paths.merged_transcript.write_text(_format_rows(aggregate.rows), encoding="utf-8")
    written = [paths.merged_transcript]

    paths.speakers_dir.mkdir(parents=True, exist_ok=True)
    for stale in paths.speakers_dir.glob(f"*{TRANSCRIPT_SUFFIX}"):
        stale.unlink()

    for speaker in sorted(aggregate.by_speaker):
        target = paths.speaker_transcript(speaker)
        target.write_text(_format_rows(aggregate.by_speaker[speaker]), encoding="utf-8")
        written.append(target)

    logger.info("Wrote merged transcript and %d speaker transcripts", len(written) - 1)
    return written
