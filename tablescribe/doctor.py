"""Health checks for the external tools a batch run depends on.

Each check returns a ``CheckResult``; ``run_all`` and ``run_preflight``
collect them into a ``DoctorReport``.  ``require_dependencies`` turns a
report with failures into ``DependencyMissingError`` so a batch aborts
before touching any file.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from tablescribe.config import TablescribeSettings, resolve_output_dir

# Minimum free space on the output volume before we warn (engine output,
# archives and transcripts are small; this is about the model cache).
_MIN_FREE_BYTES = 2 * 1024 * 1024 * 1024


class CheckStatus(str, Enum):
    OK = "ok"
    WARN = "warn"
    FAIL = "fail"
    SKIP = "skip"


@dataclass
class CheckResult:
    status: CheckStatus
    label: str
    detail: str = ""
    fix_key: str = ""


@dataclass
class DoctorReport:
    results: list[CheckResult] = field(default_factory=list)

    @property
    def failures(self) -> list[CheckResult]:
        return [r for r in self.results if r.status == CheckStatus.FAIL]

    @property
    def warnings(self) -> list[CheckResult]:
        return [r for r in self.results if r.status == CheckStatus.WARN]

    @property
    def notes(self) -> list[CheckResult]:
        return [r for r in self.results if r.status == CheckStatus.SKIP]

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


class DependencyMissingError(RuntimeError):
    """A required external tool is not available."""

    def __init__(self, report: DoctorReport) -> None:
        self.report = report
        labels = ", ".join(r.label for r in report.failures)
        super().__init__(f"Missing required tools: {labels}")


def _first_line(cmd: list[str]) -> str:
    """Run *cmd* and return the first line of its output, or '' on any failure."""
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=15)
    except (OSError, subprocess.SubprocessError):
        return ""
    out = (proc.stdout or proc.stderr or "").strip()
    return out.splitlines()[0] if out else ""


def check_ffmpeg() -> CheckResult:
    """whisper decodes every input through ffmpeg."""
    path = shutil.which("ffmpeg")
    if path is None:
        return CheckResult(
            status=CheckStatus.FAIL,
            label="FFmpeg",
            detail="not found",
            fix_key="ffmpeg_missing",
        )
    version_line = _first_line(["ffmpeg", "-version"])
    parts = version_line.split()
    if len(parts) >= 3 and parts[0] == "ffmpeg" and parts[1] == "version":
        return CheckResult(status=CheckStatus.OK, label="FFmpeg", detail=f"{parts[2]} ({path})")
    return CheckResult(status=CheckStatus.OK, label="FFmpeg", detail=path)


def check_engine(settings: TablescribeSettings) -> CheckResult:
    """The speech-to-text command must be on PATH."""
    path = shutil.which(settings.engine_command)
    if path is None:
        return CheckResult(
            status=CheckStatus.FAIL,
            label="Whisper",
            detail=f"'{settings.engine_command}' not found",
            fix_key="engine_missing",
        )
    return CheckResult(
        status=CheckStatus.OK,
        label="Whisper",
        detail=f"{path} · {settings.whisper_model}",
    )


def check_disk_space(settings: TablescribeSettings) -> CheckResult:
    """Warn when the output volume is nearly full."""
    target: Path = resolve_output_dir(settings)
    while not target.exists() and target != target.parent:
        target = target.parent
    try:
        free = shutil.disk_usage(target).free
    except OSError:
        return CheckResult(status=CheckStatus.SKIP, label="Disk space", detail="unknown")
    free_gb = free / (1024 ** 3)
    if free < _MIN_FREE_BYTES:
        return CheckResult(
            status=CheckStatus.WARN,
            label="Disk space",
            detail=f"{free_gb:.1f} GB free",
            fix_key="low_disk_space",
        )
    return CheckResult(status=CheckStatus.OK, label="Disk space", detail=f"{free_gb:.0f} GB free")


def run_all(settings: TablescribeSettings) -> DoctorReport:
    """Every check, for ``tablescribe doctor``."""
    return DoctorReport(results=[
        check_engine(settings),
        check_ffmpeg(),
        check_disk_space(settings),
    ])


def run_preflight(settings: TablescribeSettings) -> DoctorReport:
    """Checks that must pass before a batch starts.

    Post-process-only runs never invoke the engine, so they need nothing.
    """
    if settings.post_process_only:
        return DoctorReport()
    return DoctorReport(results=[check_engine(settings), check_ffmpeg()])


def require_dependencies(settings: TablescribeSettings) -> DoctorReport:
    """Run the preflight and raise ``DependencyMissingError`` on any failure."""
    report = run_preflight(settings)
    if report.has_failures:
        raise DependencyMissingError(report)
    return report
