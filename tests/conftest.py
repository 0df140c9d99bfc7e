"""Shared test fixtures for tablescribe tests."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from tablescribe.config import TablescribeSettings
from tablescribe.engine import EngineResult
from tablescribe.output_paths import OutputPaths

RAW_HEADER = "start\tend\ttext"


def raw_tsv(rows: list[tuple[int, int, str]]) -> str:
    """Whisper-style TSV text for *rows* of (start, end, text)."""
    lines = [RAW_HEADER, *(f"{s}\t{e}\t{t}" for s, e, t in rows)]
    return "\n".join(lines) + "\n"


class FakeEngine:
    """Stands in for WhisperEngine: writes canned TSV output per audio file.

    Files named in ``failing`` exit non-zero and produce nothing.
    """

    def __init__(
        self,
        outputs: dict[str, list[tuple[int, int, str]]] | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self.outputs = outputs or {}
        self.failing = failing or set()
        self.calls: list[str] = []

    def transcribe(self, audio_path: Path, output_dir: Path) -> EngineResult:
        self.calls.append(audio_path.name)
        if audio_path.name in self.failing:
            return EngineResult(ok=False, returncode=1, error="engine exited with status 1")
        output_dir.mkdir(parents=True, exist_ok=True)
        out = output_dir / f"{audio_path.stem}.tsv"
        out.write_text(raw_tsv(self.outputs.get(audio_path.name, [])), encoding="utf-8")
        return EngineResult(ok=True, returncode=0, output_path=out)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Pipeline runs attach file handlers to the root logger; drop them."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    logging.basicConfig(level=logging.WARNING, force=True)


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., TablescribeSettings]:
    """Factory for settings that never pick up the developer's .env."""

    def _make(**overrides: object) -> TablescribeSettings:
        defaults: dict[str, object] = {
            "input_dir": tmp_path / "session",
            "output_dir": tmp_path / "out",
        }
        defaults.update(overrides)
        return TablescribeSettings(_env_file=None, **defaults)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def session_dir(tmp_path: Path) -> Path:
    """An input folder with three Craig-style tracks (empty audio files)."""
    d = tmp_path / "session"
    d.mkdir()
    for name in ("1-alice_0.flac", "2-bob_1234.flac", "3-carol_42.flac"):
        (d / name).write_bytes(b"\0" * 64)
    return d


@pytest.fixture
def out_paths(tmp_path: Path) -> OutputPaths:
    paths = OutputPaths(tmp_path / "out")
    paths.ensure_dirs()
    return paths
