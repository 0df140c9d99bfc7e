"""Run the whisper CLI on one audio file.

The engine is treated as a black box: it gets an audio path and an output
directory, and either writes ``<stem>.tsv`` there and exits 0, or it
failed.  Nothing else about its behaviour is relied on.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from tablescribe.config import TablescribeSettings
from tablescribe.output_paths import RAW_SUFFIX

logger = logging.getLogger(__name__)

# How much of the engine's stderr to keep in an error message.
_STDERR_TAIL = 300


@dataclass
class EngineResult:
    """Outcome of one engine invocation."""

    ok: bool
    returncode: int | None = None
    output_path: Path | None = None
    error: str = ""


class WhisperEngine:
    """Fixed-profile wrapper around the ``whisper`` command."""

    def __init__(self, settings: TablescribeSettings) -> None:
        self.command = settings.engine_command
        self.model = settings.whisper_model
        self.language = settings.whisper_language
        self.condition_on_previous_text = settings.condition_on_previous_text
        self.compression_ratio_threshold = settings.compression_ratio_threshold
        self.timeout = settings.engine_timeout_seconds

    def build_args(self, audio_path: Path, output_dir: Path) -> list[str]:
        return [
            self.command,
            str(audio_path),
            "--model", self.model,
            "--language", self.language,
            "--condition_on_previous_text", str(self.condition_on_previous_text),
            "--compression_ratio_threshold", str(self.compression_ratio_threshold),
            "--output_format", "tsv",
            "--output_dir", str(output_dir),
            "--verbose", "False",
        ]

    def expected_output(self, audio_path: Path, output_dir: Path) -> Path:
        return output_dir / f"{audio_path.stem}{RAW_SUFFIX}"

    def transcribe(self, audio_path: Path, output_dir: Path) -> EngineResult:
        """Run the engine and check for its output file.

        Blocks until the process exits (or the configured timeout expires).
        Never raises for engine failures; they come back as ``ok=False``.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.expected_output(audio_path, output_dir)
        # A leftover from an earlier run must not pass for this run's output.
        output_path.unlink(missing_ok=True)
        args = self.build_args(audio_path, output_dir)
        logger.debug("Engine command: %s", " ".join(args))

        try:
            proc = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return EngineResult(
                ok=False,
                error=f"engine timed out after {self.timeout:g}s",
            )
        except OSError as exc:
            return EngineResult(ok=False, error=f"could not start engine: {exc}")

        if proc.returncode != 0:
            error = f"engine exited with status {proc.returncode}"
            tail = (proc.stderr or "").strip()[-_STDERR_TAIL:]
            if tail:
                error = f"{error}: {tail}"
            return EngineResult(ok=False, returncode=proc.returncode, error=error)

        if not output_path.exists():
            return EngineResult(
                ok=False,
                returncode=proc.returncode,
                error=f"engine produced no {output_path.name}",
            )

        return EngineResult(ok=True, returncode=proc.returncode, output_path=output_path)
