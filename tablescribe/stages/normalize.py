"""Per-file post-processing: raw engine output → normalized transcript."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from tablescribe.models import ProcessResult
from tablescribe.output_paths import OutputPaths
from tablescribe.speakers import extract_speaker_label
from tablescribe.stages.collapse import collapse_segments
from tablescribe.stages.filter import IgnoreFilter
from tablescribe.stages.parse import format_segments, parse_raw_segments

logger = logging.getLogger(__name__)


def archive_original(raw_path: Path, paths: OutputPaths) -> Path:
    """Copy *raw_path* into the archive unless a copy already exists.

    The first archived copy is never overwritten, so re-running a batch
    keeps the engine's original output even after normalization.
    """
    target = paths.archived_for(raw_path.name)
    if target.exists():
        logger.debug("Original already archived: %s", target.name)
        return target
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(raw_path, target)
    logger.info("Archived original engine output: %s", target.name)
    return target


def process_raw_file(
    raw_path: Path,
    paths: OutputPaths,
    ignore_filter: IgnoreFilter,
    source_name: str | None = None,
) -> ProcessResult:
    """Normalize one raw engine output file.

    Steps: archive the original, resolve the speaker label, parse, filter,
    collapse, then write ``transcripts/<stem>.tsv``.

    Args:
        raw_path: Engine output (``start\\tend\\ttext`` TSV).
        paths: Output layout for this batch.
        ignore_filter: Shared filter; its ``dropped`` counter accumulates
            across files.
        source_name: Name of the audio file the output came from, used for
            the speaker label.  Defaults to the raw file's own name.

    Returns:
        A ``ProcessResult``.  Failures are reported in the result rather
        than raised, so one bad file never stops a batch.
    """
    name = source_name or raw_path.name
    speaker = extract_speaker_label(name)
    result = ProcessResult(ok=False, source=name, speaker=speaker)
    dropped_before = ignore_filter.dropped

    try:
        if raw_path.resolve() != paths.archived_for(raw_path.name).resolve():
            archive_original(raw_path, paths)

        parsed = list(parse_raw_segments(raw_path, speaker))
        collapsed = list(collapse_segments(ignore_filter.apply(parsed)))

        output_path = paths.normalized_for(raw_path.name)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(format_segments(collapsed), encoding="utf-8")
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        result.error = f"{type(exc).__name__}: {exc}"
        logger.error("%s: post-processing failed: %s", name, result.error)
        return result

    result.ok = True
    result.output_path = output_path
    result.segments_in = len(parsed)
    result.segments_dropped = ignore_filter.dropped - dropped_before
    result.segments_out = len(collapsed)
    logger.info(
        "%s: %d segments → %d (%d ignored) as %s",
        name,
        result.segments_in,
        result.segments_out,
        result.segments_dropped,
        speaker,
    )
    return result
