"""Command-line interface for tablescribe."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from tablescribe import __version__
from tablescribe.config import load_settings, resolve_output_dir

# Known commands, used by _maybe_inject_run() to detect bare directory arguments
_COMMANDS = {"run", "status", "doctor"}


def _maybe_inject_run() -> None:
    """If the first argument is a directory (not a command), inject 'run'.

    This allows `tablescribe session-12` as shorthand for `tablescribe run session-12`.
    """
    if len(sys.argv) < 2:
        return  # No arguments: let Typer show help

    first_arg = sys.argv[1]

    if first_arg in _COMMANDS or first_arg.startswith("-"):
        return

    if Path(first_arg).is_dir():
        sys.argv.insert(1, "run")


# Inject 'run' before Typer parses arguments
_maybe_inject_run()

app = typer.Typer(
    name="tablescribe",
    help="Batch transcription and transcript merging for multi-track session recordings.",
    no_args_is_help=True,
)
console = Console(width=min(80, Console().width))


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"tablescribe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version", "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Batch transcription and transcript merging for multi-track session recordings."""


# ---------------------------------------------------------------------------
# Doctor output
# ---------------------------------------------------------------------------


def _format_doctor_table(report: object) -> None:
    """Print the doctor results table using Rich."""
    from tablescribe.doctor import CheckStatus, DoctorReport

    assert isinstance(report, DoctorReport)

    for result in report.results:
        if result.status == CheckStatus.OK:
            status = "[dim green]ok[/dim green]"
        elif result.status == CheckStatus.WARN:
            status = "[bold yellow]!![/bold yellow]"
        elif result.status == CheckStatus.FAIL:
            status = "[bold red]!![/bold red]"
        else:
            status = "[dim]--[/dim]"

        label = f"{result.label:<16}"
        detail = f"[dim]{result.detail}[/dim]" if result.detail else ""
        console.print(f"  {label}{status}   {detail}")


def _print_doctor_fixes(report: object) -> None:
    """Print fix instructions for failures and warnings."""
    from tablescribe.doctor import DoctorReport
    from tablescribe.doctor_fixes import get_fix

    assert isinstance(report, DoctorReport)

    fixable = report.failures + report.warnings
    if fixable:
        console.print()
        for result in fixable:
            fix = get_fix(result.fix_key)
            if fix:
                console.print(fix, markup=False)
                console.print()


# ---------------------------------------------------------------------------
# Batch header and summary output
# ---------------------------------------------------------------------------


def _print_header(settings: object) -> None:
    """Print the version + engine profile header line."""
    from tablescribe.config import TablescribeSettings

    assert isinstance(settings, TablescribeSettings)

    parts: list[str] = [f"v{__version__}"]
    if settings.post_process_only:
        parts.append("post-process only")
    else:
        parts.append(f"whisper {settings.whisper_model} ({settings.whisper_language})")
    if settings.force:
        parts.append("force")
    console.print(f"\ntablescribe [dim]{' · '.join(parts)}[/dim]\n")


def _print_batch_summary(result: object) -> None:
    """Print this run's counts, the state store totals and the done line."""
    from tablescribe.models import BatchResult
    from tablescribe.output_paths import OutputPaths
    from tablescribe.utils.timecodes import format_bytes, format_duration, format_minutes_seconds

    assert isinstance(result, BatchResult)

    parts = [f"{len(result.succeeded)} transcribed"]
    if result.skipped:
        parts.append(f"{len(result.skipped)} skipped")
    if result.failed:
        parts.append(f"[red]{len(result.failed)} failed[/red]")
    console.print(f"\n  [dim]{' · '.join(parts)}[/dim]")

    stats = result.stats
    if stats is not None and stats.total_files:
        console.print(
            f"  [dim]All runs: {stats.total_files} attempts · {stats.success_count} ok · "
            f"{stats.error_count} errors · {format_bytes(stats.total_size_bytes)}[/dim]"
        )
        console.print(
            f"  [dim]Engine time: {format_minutes_seconds(stats.total_duration_seconds)} total · "
            f"{format_minutes_seconds(stats.average_duration_seconds)} average[/dim]"
        )

    merged = OutputPaths(result.output_dir).merged_transcript
    if result.aggregate is not None and merged.exists():
        console.print(f"\n  Transcript:  {merged}")

    if result.failed or result.aggregation_error:
        console.print(
            f"\n  [red]Finished with errors[/red] in {format_duration(result.elapsed_seconds)}"
            " (see .tablescribe/processing_log.csv)"
        )
    else:
        console.print(f"\n  [green]Done[/green] in {format_duration(result.elapsed_seconds)}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def run(
    input_dir: Annotated[
        Path,
        typer.Argument(help="Directory containing the session's audio tracks."),
    ],
    output_dir: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output directory (default: transcriptions/ next to the input folder)."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Re-transcribe files that already succeeded."),
    ] = False,
    post_process_only: Annotated[
        bool,
        typer.Option("--post-process-only", help="Skip the engine; rebuild transcripts from raw output on disk."),
    ] = False,
    cleanup: Annotated[
        bool,
        typer.Option("--cleanup", help="Remove the engine working directory when done."),
    ] = False,
    force_schema: Annotated[
        bool,
        typer.Option("--force-schema", help="Migrate a state file written with different columns."),
    ] = False,
    ignore: Annotated[
        list[str] | None,
        typer.Option("--ignore", "-i", help="Extra phrase to drop from transcripts (repeatable)."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Whisper model name. [default: large-v3]"),
    ] = None,
    language: Annotated[
        str | None,
        typer.Option("--language", "-l", help="Spoken language code. [default: en]"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Give up on a file after this many seconds (default: no limit)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging."),
    ] = False,
) -> None:
    """Transcribe every recording in a folder and merge the results."""
    from tablescribe.doctor import DependencyMissingError
    from tablescribe.pipeline import Pipeline
    from tablescribe.state import StateSchemaError

    if not input_dir.is_dir():
        console.print(f"[red]Input directory not found: {input_dir}[/red]")
        raise typer.Exit(1)

    settings = load_settings(
        input_dir=input_dir,
        output_dir=output_dir,
        force=force or None,
        post_process_only=post_process_only or None,
        cleanup_temp=cleanup or None,
        force_schema=force_schema or None,
        whisper_model=model,
        whisper_language=language,
        engine_timeout_seconds=timeout,
    )
    if ignore:
        settings = settings.model_copy(
            update={"ignore_phrases": [*settings.ignore_phrases, *ignore]},
        )
    resolved_output = resolve_output_dir(settings)

    _print_header(settings)

    pipeline = Pipeline(settings, verbose=verbose)
    try:
        result = pipeline.run(input_dir, resolved_output)
    except DependencyMissingError as exc:
        console.print("[dim]Checking your setup[/dim]")
        _format_doctor_table(exc.report)
        _print_doctor_fixes(exc.report)
        raise typer.Exit(1) from None
    except StateSchemaError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from None

    _print_batch_summary(result)


@app.command()
def status(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Output directory (or input directory) from a previous run."),
    ],
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show per-file detail."),
    ] = False,
) -> None:
    """Show processing totals for a previous batch (read-only)."""
    from tablescribe.models import ProcessingStatus
    from tablescribe.state import StateSchemaError
    from tablescribe.status import get_run_status, resolve_output_dir as find_output_dir
    from tablescribe.utils.timecodes import format_bytes, format_minutes_seconds

    output_dir = find_output_dir(project_dir)
    try:
        run_status = get_run_status(output_dir) if output_dir is not None else None
    except StateSchemaError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from None
    if run_status is None:
        console.print(
            f"No run state found for [bold]{project_dir}[/bold].\n"
            f"Run [bold]tablescribe run {project_dir}[/bold] to start."
        )
        raise typer.Exit(1)

    stats = run_status.stats
    console.print(f"\n  [bold]{run_status.output_dir}[/bold]\n")
    console.print(f"  Attempts        {stats.total_files}")
    console.print(f"  Succeeded       [green]{stats.success_count}[/green]")
    errors = f"[red]{stats.error_count}[/red]" if stats.error_count else "0"
    console.print(f"  Errors          {errors}")
    console.print(f"  Total time      {format_minutes_seconds(stats.total_duration_seconds)}")
    console.print(f"  Average time    {format_minutes_seconds(stats.average_duration_seconds)}")
    console.print(f"  Audio size      {format_bytes(stats.total_size_bytes)}")
    console.print(
        f"  Transcripts     {run_status.transcript_count} files · "
        f"{run_status.speaker_count} speakers"
        f"{'' if run_status.has_merged else ' · [yellow]not merged[/yellow]'}"
    )

    if verbose:
        console.print()
        for info in run_status.files:
            if info.status == ProcessingStatus.SUCCESS:
                icon = "[green]✓[/green]"
            else:
                icon = "[red]✗[/red]"
            retries = f"  [dim]×{info.attempts}[/dim]" if info.attempts > 1 else ""
            console.print(f"  {icon} {info.file_name}  [dim]{info.speaker}[/dim]{retries}")
            if info.last_error:
                console.print(f"      [dim red]{escape(info.last_error[:70])}[/dim red]")
    elif run_status.pending_errors:
        console.print(
            f"\n  [yellow]{len(run_status.pending_errors)} files still failing[/yellow]"
            "; rerun to retry them, or use -v for detail"
        )
    console.print()


@app.command()
def doctor() -> None:
    """Check that whisper and ffmpeg are installed."""
    from tablescribe.doctor import run_all

    settings = load_settings()

    console.print(f"\ntablescribe {__version__}\n")

    report = run_all(settings)
    _format_doctor_table(report)

    if not report.has_failures and not report.has_warnings:
        console.print("\n[dim green]All clear.[/dim green]")
    else:
        _print_doctor_fixes(report)
    console.print()
    if report.has_failures:
        raise typer.Exit(1)
