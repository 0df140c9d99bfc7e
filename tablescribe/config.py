"""Application settings loaded from environment variables or .env."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Phrases whisper tends to hallucinate on silence, plus bare fillers.
# Matched case-insensitively against the whole segment text.
DEFAULT_IGNORE_PHRASES: list[str] = [
    "um",
    "uh",
    "hmm",
    "mm",
    "mm-hmm",
    "uh-huh",
    "you",
    "bye",
    "thank you",
    "thanks",
    "thank you for watching",
    "thanks for watching",
    "please subscribe",
    "subtitles by the amara.org community",
]

# Name of the sibling folder used when no output directory is given.
DEFAULT_OUTPUT_DIRNAME = "transcriptions"


def _find_env_files() -> list[Path]:
    """Find the nearest .env file, searching upward from CWD."""
    cwd = Path.cwd().resolve()
    for parent in [cwd, *cwd.parents]:
        env_path = parent / ".env"
        if env_path.is_file():
            return [env_path]
    return []


class TablescribeSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TABLESCRIBE_",
        env_file=_find_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    input_dir: Path = Path("input")
    output_dir: Path | None = None  # None → <input_dir>/../transcriptions

    # Run behaviour
    force: bool = False
    post_process_only: bool = False
    cleanup_temp: bool = False
    force_schema: bool = False

    # Post-processing
    ignore_phrases: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE_PHRASES))

    # Engine (whisper CLI)
    engine_command: str = "whisper"
    whisper_model: str = "large-v3"
    whisper_language: str = "en"
    condition_on_previous_text: bool = False
    compression_ratio_threshold: float = 1.8
    engine_timeout_seconds: float | None = None  # None = wait forever


def load_settings(**overrides: object) -> TablescribeSettings:
    """Load settings with optional CLI overrides.

    ``None`` values are dropped so that an unset CLI option never masks an
    environment variable.
    """
    cleaned = {k: v for k, v in overrides.items() if v is not None}
    return TablescribeSettings(**cleaned)  # type: ignore[arg-type]


def resolve_output_dir(settings: TablescribeSettings) -> Path:
    """Return the configured output directory, defaulting to a sibling folder."""
    if settings.output_dir is not None:
        return settings.output_dir
    input_dir = settings.input_dir.resolve()
    return input_dir.parent / DEFAULT_OUTPUT_DIRNAME
