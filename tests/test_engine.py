"""Tests for the whisper subprocess wrapper."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from tablescribe.config import TablescribeSettings
from tablescribe.engine import WhisperEngine


def _engine(**overrides: object) -> WhisperEngine:
    return WhisperEngine(TablescribeSettings(_env_file=None, **overrides))  # type: ignore[arg-type]


def _proc(returncode: int = 0, stderr: str = "") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.stdout = ""
    proc.stderr = stderr
    return proc


class TestBuildArgs:
    def test_fixed_profile(self, tmp_path: Path) -> None:
        args = _engine().build_args(Path("/in/12-alice_7.flac"), tmp_path)
        assert args[0] == "whisper"
        assert args[1] == "/in/12-alice_7.flac"
        flags = dict(zip(args[2::2], args[3::2]))
        assert flags == {
            "--model": "large-v3",
            "--language": "en",
            "--condition_on_previous_text": "False",
            "--compression_ratio_threshold": "1.8",
            "--output_format": "tsv",
            "--output_dir": str(tmp_path),
            "--verbose": "False",
        }

    def test_settings_flow_through(self, tmp_path: Path) -> None:
        engine = _engine(
            engine_command="/opt/whisper/bin/whisper",
            whisper_model="small",
            whisper_language="de",
        )
        args = engine.build_args(Path("a.wav"), tmp_path)
        assert args[0] == "/opt/whisper/bin/whisper"
        assert args[args.index("--model") + 1] == "small"
        assert args[args.index("--language") + 1] == "de"

    def test_expected_output_uses_stem(self, tmp_path: Path) -> None:
        assert _engine().expected_output(Path("x/1-bob_0.mp3"), tmp_path) == tmp_path / "1-bob_0.tsv"


class TestTranscribe:
    def test_success(self, tmp_path: Path) -> None:
        audio = Path("1-bob_0.mp3")

        def fake_run(args, **kwargs):
            (tmp_path / "1-bob_0.tsv").write_text("start\tend\ttext\n", encoding="utf-8")
            return _proc(0)

        with patch("tablescribe.engine.subprocess.run", side_effect=fake_run) as run:
            result = _engine().transcribe(audio, tmp_path)

        assert result.ok
        assert result.output_path == tmp_path / "1-bob_0.tsv"
        assert run.call_args.kwargs["timeout"] is None

    def test_nonzero_exit_includes_stderr_tail(self, tmp_path: Path) -> None:
        with patch("tablescribe.engine.subprocess.run", return_value=_proc(2, "x" * 1000 + "boom\n")):
            result = _engine().transcribe(Path("a.mp3"), tmp_path)
        assert not result.ok
        assert result.returncode == 2
        assert result.error.startswith("engine exited with status 2: ")
        assert result.error.endswith("boom")
        assert len(result.error) < 400

    def test_nonzero_exit_without_stderr(self, tmp_path: Path) -> None:
        with patch("tablescribe.engine.subprocess.run", return_value=_proc(1)):
            result = _engine().transcribe(Path("a.mp3"), tmp_path)
        assert result.error == "engine exited with status 1"

    def test_zero_exit_without_output_fails(self, tmp_path: Path) -> None:
        with patch("tablescribe.engine.subprocess.run", return_value=_proc(0)):
            result = _engine().transcribe(Path("a.mp3"), tmp_path)
        assert not result.ok
        assert result.error == "engine produced no a.tsv"

    def test_stale_output_does_not_count(self, tmp_path: Path) -> None:
        (tmp_path / "a.tsv").write_text("start\tend\ttext\n0\t1\told\n", encoding="utf-8")
        with patch("tablescribe.engine.subprocess.run", return_value=_proc(0)):
            result = _engine().transcribe(Path("a.mp3"), tmp_path)
        assert not result.ok
        assert result.error == "engine produced no a.tsv"
        assert not (tmp_path / "a.tsv").exists()

    def test_timeout_is_a_failure(self, tmp_path: Path) -> None:
        expired = subprocess.TimeoutExpired(cmd="whisper", timeout=5)
        with patch("tablescribe.engine.subprocess.run", side_effect=expired) as run:
            result = _engine(engine_timeout_seconds=5).transcribe(Path("a.mp3"), tmp_path)
        assert run.call_args.kwargs["timeout"] == 5
        assert not result.ok
        assert result.error == "engine timed out after 5s"

    def test_missing_command_is_a_failure(self, tmp_path: Path) -> None:
        with patch("tablescribe.engine.subprocess.run", side_effect=FileNotFoundError("whisper")):
            result = _engine().transcribe(Path("a.mp3"), tmp_path)
        assert not result.ok
        assert result.error.startswith("could not start engine")

    def test_creates_output_dir(self, tmp_path: Path) -> None:
        outdir = tmp_path / "deep" / "engine"
        with patch("tablescribe.engine.subprocess.run", return_value=_proc(1)):
            _engine().transcribe(Path("a.mp3"), outdir)
        assert outdir.is_dir()
