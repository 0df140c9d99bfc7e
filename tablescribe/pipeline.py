"""Batch orchestrator: transcribe → normalize → record → aggregate."""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from tablescribe.config import TablescribeSettings
from tablescribe.doctor import require_dependencies
from tablescribe.engine import WhisperEngine
from tablescribe.models import (
    BatchResult,
    FileOutcome,
    FileState,
    ProcessingRecord,
    ProcessingStatus,
)
from tablescribe.output_paths import RAW_SUFFIX, TRANSCRIPT_SUFFIX, OutputPaths
from tablescribe.speakers import extract_speaker_label
from tablescribe.state import RunStateStore, StateSchemaError, StateWriteError
from tablescribe.stages.aggregate import AggregationError, aggregate_transcripts, write_aggregate
from tablescribe.stages.filter import IgnoreFilter
from tablescribe.stages.normalize import process_raw_file
from tablescribe.utils.timecodes import format_duration

logger = logging.getLogger(__name__)
console = Console(width=min(80, Console().width))

# Extensions handed to the engine.  whisper decodes anything ffmpeg can read;
# this list only decides which files in the input folder count as recordings.
AUDIO_EXTENSIONS = frozenset({
    ".aac", ".aiff", ".flac", ".m4a", ".mkv", ".mov", ".mp3", ".mp4",
    ".ogg", ".opus", ".wav", ".webm", ".wma",
})


# ---------------------------------------------------------------------------
# CLI output helpers
# ---------------------------------------------------------------------------


def _print_step(message: str, elapsed: float) -> None:
    """Print a completed step with green ✓ and right-aligned timing."""
    padding = max(1, 58 - len(message))
    console.print(f" [green]✓[/green] {message}{' ' * padding}[dim]{format_duration(elapsed)}[/dim]")


def _print_skipped(message: str) -> None:
    padding = max(1, 58 - len(message))
    console.print(f" [green]✓[/green] {message}{' ' * padding}[dim](done)[/dim]")


def _print_failed(message: str, reason: str) -> None:
    console.print(f" [red]✗[/red] {message}")
    if reason:
        console.print(f"   [dim red]{escape(reason[:74])}[/dim red]")


def _print_warn(message: str) -> None:
    console.print(f"   [dim yellow]{message}[/dim yellow]")


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def discover_inputs(input_dir: Path) -> list[Path]:
    """Recordings in *input_dir* (not recursive), in filename order.

    Sorting by name makes the processing order independent of the
    platform's directory listing order.
    """
    return sorted(
        (p for p in input_dir.iterdir() if p.is_file() and p.suffix.lower() in AUDIO_EXTENSIONS),
        key=lambda p: p.name,
    )


def discover_raw_outputs(paths: OutputPaths) -> list[Path]:
    """Raw engine outputs available for post-processing, in filename order.

    Archived originals come first choice: they are guaranteed untouched.
    Engine outputs are used only for files that were never archived.
    """
    found: dict[str, Path] = {}
    if paths.originals_dir.is_dir():
        for p in paths.originals_dir.glob(f"*{RAW_SUFFIX}"):
            found[p.name] = p
    if paths.engine_dir.is_dir():
        for p in paths.engine_dir.glob(f"*{RAW_SUFFIX}"):
            found.setdefault(p.name, p)
    return [found[name] for name in sorted(found)]


def clear_normalized(paths: OutputPaths) -> int:
    """Delete every normalized per-file transcript; returns how many."""
    if not paths.transcripts_dir.is_dir():
        return 0
    removed = 0
    for p in paths.transcripts_dir.glob(f"*{TRANSCRIPT_SUFFIX}"):
        p.unlink()
        removed += 1
    return removed


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Pipeline:
    """Runs one batch over an input folder."""

    def __init__(
        self,
        settings: TablescribeSettings,
        verbose: bool = False,
        engine: WhisperEngine | None = None,
    ) -> None:
        self.settings = settings
        self.verbose = verbose
        self.engine = engine if engine is not None else WhisperEngine(settings)
        self._logging_configured = False

    def _configure_logging(self, output_dir: Path) -> None:
        """Set up terminal, log file and log store handlers (idempotent)."""
        if self._logging_configured:
            return
        from tablescribe.logging import setup_logging

        setup_logging(output_dir=output_dir, verbose=self.verbose)
        self._logging_configured = True

    def run(self, input_dir: Path, output_dir: Path) -> BatchResult:
        """Transcribe and post-process every recording in *input_dir*.

        Raises:
            FileNotFoundError: *input_dir* does not exist.
            DependencyMissingError: the engine or ffmpeg is unavailable.
            StateSchemaError: the state file has an unexpected header and
                ``force_schema`` is off.
        """
        if not input_dir.is_dir():
            raise FileNotFoundError(f"Input directory not found: {input_dir}")

        pipeline_start = time.perf_counter()
        paths = OutputPaths(output_dir)
        paths.ensure_dirs()
        self._configure_logging(output_dir)
        result = BatchResult(output_dir=output_dir)

        if self.settings.post_process_only:
            return self._run_post_process_only(paths, result, pipeline_start)

        require_dependencies(self.settings)

        store = RunStateStore(paths.state_file, force_schema=self.settings.force_schema)
        # Surface schema problems before any file is touched.
        store.records()

        inputs = discover_inputs(input_dir)
        if not inputs:
            logger.warning("No recordings found in %s", input_dir)
            console.print(f"[yellow]No recordings found in {input_dir.name}/.[/yellow]")
            result.stats = store.stats()
            result.elapsed_seconds = time.perf_counter() - pipeline_start
            return result

        logger.info("Batch started: %d recordings in %s", len(inputs), input_dir)
        console.print(f"[dim]{len(inputs)} recordings in {input_dir.name}/[/dim]\n")

        ignore_filter = IgnoreFilter(self.settings.ignore_phrases)
        # Output files are named by stem; the first input with a stem owns it.
        stem_owners: dict[str, str] = {}
        for audio_path in inputs:
            owner = stem_owners.setdefault(audio_path.stem, audio_path.name)
            if owner != audio_path.name:
                outcome = self._reject_duplicate(audio_path, owner, store)
            else:
                outcome = self.process_file(audio_path, paths, store, ignore_filter)
            result.outcomes.append(outcome)

        self._aggregate(paths, result)

        if self.settings.cleanup_temp:
            self._cleanup(paths)

        result.stats = store.stats()
        result.elapsed_seconds = time.perf_counter() - pipeline_start
        logger.info(
            "Batch finished: %d succeeded, %d failed, %d skipped in %s",
            len(result.succeeded),
            len(result.failed),
            len(result.skipped),
            format_duration(result.elapsed_seconds),
        )
        return result

    # ------------------------------------------------------------------
    # Per-file state machine
    # ------------------------------------------------------------------

    def process_file(
        self,
        audio_path: Path,
        paths: OutputPaths,
        store: RunStateStore,
        ignore_filter: IgnoreFilter,
    ) -> FileOutcome:
        """Move one recording from pending to skipped, succeeded or failed."""
        name = audio_path.name
        speaker = extract_speaker_label(name)
        outcome = FileOutcome(file_name=name, state=FileState.PENDING, speaker=speaker)

        if not self.settings.force and store.is_processed(name):
            outcome.state = FileState.SKIPPED
            logger.info("%s: already processed, skipping", name)
            _print_skipped(f"{name} ({speaker})")
            return outcome

        outcome.state = FileState.RUNNING
        logger.info("%s: transcribing as %s", name, speaker)
        t0 = time.perf_counter()
        try:
            with console.status(f"[dim]Transcribing {name}...[/dim]", spinner="dots"):
                engine_result = self.engine.transcribe(audio_path, paths.engine_dir)
            if not engine_result.ok or engine_result.output_path is None:
                outcome.error = engine_result.error or "engine failed"
            else:
                processed = process_raw_file(
                    engine_result.output_path, paths, ignore_filter, source_name=name,
                )
                if not processed.ok:
                    outcome.error = processed.error
        except Exception as exc:
            logger.exception("%s: unexpected error", name)
            outcome.error = f"{type(exc).__name__}: {exc}"
        outcome.elapsed_seconds = time.perf_counter() - t0

        outcome.state = FileState.FAILED if outcome.error else FileState.SUCCEEDED
        self._record(store, audio_path, outcome)

        if outcome.state == FileState.SUCCEEDED:
            logger.info("%s: done in %s", name, format_duration(outcome.elapsed_seconds))
            _print_step(f"{name} ({speaker})", outcome.elapsed_seconds)
        else:
            logger.error("%s: failed: %s", name, outcome.error)
            _print_failed(f"{name} ({speaker})", outcome.error)
        return outcome

    def _reject_duplicate(
        self, audio_path: Path, owner: str, store: RunStateStore,
    ) -> FileOutcome:
        """Fail a recording whose outputs would overwrite *owner*'s."""
        name = audio_path.name
        speaker = extract_speaker_label(name)
        outcome = FileOutcome(
            file_name=name,
            state=FileState.FAILED,
            speaker=speaker,
            error=f"output name {audio_path.stem} already used by {owner}; rename one of them",
        )
        self._record(store, audio_path, outcome)
        logger.error("%s: failed: %s", name, outcome.error)
        _print_failed(f"{name} ({speaker})", outcome.error)
        return outcome

    def _record(self, store: RunStateStore, audio_path: Path, outcome: FileOutcome) -> None:
        try:
            size = audio_path.stat().st_size
        except OSError:
            size = 0
        record = ProcessingRecord(
            file_name=outcome.file_name,
            file_size_bytes=size,
            processing_time_seconds=outcome.elapsed_seconds,
            status=(
                ProcessingStatus.SUCCESS
                if outcome.state == FileState.SUCCEEDED
                else ProcessingStatus.ERROR
            ),
            speaker_label=outcome.speaker,
            error_message=outcome.error,
        )
        try:
            store.record(record)
        except StateWriteError as exc:
            logger.error("%s: %s", outcome.file_name, exc)
            _print_warn(f"State not saved for {outcome.file_name}; it will be redone next run")

    # ------------------------------------------------------------------
    # Post-process-only mode
    # ------------------------------------------------------------------

    def _run_post_process_only(
        self, paths: OutputPaths, result: BatchResult, pipeline_start: float,
    ) -> BatchResult:
        """Rebuild every normalized transcript from raw engine output on disk."""
        raw_files = discover_raw_outputs(paths)
        if not raw_files:
            logger.warning("No raw engine output found in %s", paths.output_dir)
            console.print(
                f"[yellow]No raw engine output found in {paths.output_dir.name}/.[/yellow]"
            )
            result.elapsed_seconds = time.perf_counter() - pipeline_start
            return result

        removed = clear_normalized(paths)
        logger.info(
            "Post-processing %d raw files (%d old transcripts removed)", len(raw_files), removed,
        )
        console.print(f"[dim]{len(raw_files)} raw transcripts in {paths.output_dir.name}/[/dim]\n")

        ignore_filter = IgnoreFilter(self.settings.ignore_phrases)
        for raw_path in raw_files:
            t0 = time.perf_counter()
            processed = process_raw_file(raw_path, paths, ignore_filter)
            outcome = FileOutcome(
                file_name=raw_path.name,
                state=FileState.SUCCEEDED if processed.ok else FileState.FAILED,
                speaker=processed.speaker,
                elapsed_seconds=time.perf_counter() - t0,
                error=processed.error,
            )
            result.outcomes.append(outcome)
            if processed.ok:
                _print_step(
                    f"{raw_path.name} ({processed.speaker}, {processed.segments_out} lines)",
                    outcome.elapsed_seconds,
                )
            else:
                _print_failed(raw_path.name, processed.error)

        self._aggregate(paths, result)
        try:
            result.stats = RunStateStore(
                paths.state_file, force_schema=self.settings.force_schema,
            ).stats()
        except StateSchemaError as exc:
            logger.warning("Run state unavailable: %s", exc)
        result.elapsed_seconds = time.perf_counter() - pipeline_start
        return result

    # ------------------------------------------------------------------
    # Aggregation and cleanup
    # ------------------------------------------------------------------

    def _aggregate(self, paths: OutputPaths, result: BatchResult) -> None:
        """Merge per-file transcripts; failures here never fail the batch."""
        t0 = time.perf_counter()
        try:
            aggregate = aggregate_transcripts(paths.transcripts_dir)
            write_aggregate(aggregate, paths)
        except (AggregationError, OSError) as exc:
            result.aggregation_error = str(exc)
            logger.error("Aggregation failed: %s", exc)
            _print_failed("Merged transcript", str(exc))
            return
        result.aggregate = aggregate
        _print_step(
            f"Merged {len(aggregate.rows)} lines from {len(aggregate.by_speaker)} speakers",
            time.perf_counter() - t0,
        )

    def _cleanup(self, paths: OutputPaths) -> None:
        """Remove the engine's working directory (archived originals stay)."""
        try:
            shutil.rmtree(paths.engine_dir)
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("Could not remove %s: %s", paths.engine_dir, exc)
            _print_warn(f"Could not remove {paths.engine_dir.name}/: {exc}")
            return
        logger.info("Removed engine working directory %s", paths.engine_dir)
