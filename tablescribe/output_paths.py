"""Output directory structure and path helpers.

Layout:
    transcriptions/
    ├── merged_transcript.tsv          # All speakers, sorted by start time
    ├── speakers/                      # One transcript per speaker
    │   ├── alice.tsv
    │   └── ...
    ├── transcripts/                   # Normalized per-file transcripts
    │   ├── 12-alice_7.tsv
    │   └── ...
    ├── originals/                     # Untouched engine output (first copy wins)
    │   ├── 12-alice_7.tsv
    │   └── ...
    ├── engine/                        # Engine working directory (--cleanup removes it)
    └── .tablescribe/                  # Run state and logs
        ├── processing_state.csv
        ├── processing_log.csv
        └── tablescribe.log
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Extension whisper uses for ``--output_format tsv``.
RAW_SUFFIX = ".tsv"
TRANSCRIPT_SUFFIX = ".tsv"

MERGED_FILENAME = "merged_transcript.tsv"
STATE_FILENAME = "processing_state.csv"
LOG_STORE_FILENAME = "processing_log.csv"
LOG_FILENAME = "tablescribe.log"
INTERNAL_DIRNAME = ".tablescribe"


@dataclass
class OutputPaths:
    """Computed paths for all output files of one batch.

    Example:
        paths = OutputPaths(output_dir)
        paths.merged_transcript  # → output_dir / "merged_transcript.tsv"
        paths.normalized_for("12-alice_7.tsv")
    """

    output_dir: Path

    # --- Deliverables ---

    @property
    def merged_transcript(self) -> Path:
        return self.output_dir / MERGED_FILENAME

    @property
    def speakers_dir(self) -> Path:
        return self.output_dir / "speakers"

    def speaker_transcript(self, speaker: str) -> Path:
        """Per-speaker transcript path; path separators in the label are replaced."""
        safe = speaker.replace("/", "_").replace("\\", "_")
        return self.speakers_dir / f"{safe}{TRANSCRIPT_SUFFIX}"

    # --- Per-file artefacts ---

    @property
    def transcripts_dir(self) -> Path:
        return self.output_dir / "transcripts"

    @property
    def originals_dir(self) -> Path:
        return self.output_dir / "originals"

    @property
    def engine_dir(self) -> Path:
        return self.output_dir / "engine"

    def normalized_for(self, raw_name: str) -> Path:
        return self.transcripts_dir / f"{Path(raw_name).stem}{TRANSCRIPT_SUFFIX}"

    def archived_for(self, raw_name: str) -> Path:
        return self.originals_dir / raw_name

    # --- Internal ---

    @property
    def internal_dir(self) -> Path:
        return self.output_dir / INTERNAL_DIRNAME

    @property
    def state_file(self) -> Path:
        return self.internal_dir / STATE_FILENAME

    @property
    def log_store(self) -> Path:
        return self.internal_dir / LOG_STORE_FILENAME

    @property
    def log_file(self) -> Path:
        return self.internal_dir / LOG_FILENAME

    def ensure_dirs(self) -> None:
        """Create every directory a batch run writes into."""
        for d in (
            self.output_dir,
            self.transcripts_dir,
            self.originals_dir,
            self.engine_dir,
            self.speakers_dir,
            self.internal_dir,
        ):
            d.mkdir(parents=True, exist_ok=True)
