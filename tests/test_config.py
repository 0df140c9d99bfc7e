"""Tests for settings loading and output directory resolution."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from tablescribe.config import (
    DEFAULT_IGNORE_PHRASES,
    TablescribeSettings,
    load_settings,
    resolve_output_dir,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """No stray TABLESCRIBE_* variables or .env files leak into these tests."""
    for key in list(os.environ):
        if key.startswith("TABLESCRIBE_"):
            monkeypatch.delenv(key)
    monkeypatch.setitem(TablescribeSettings.model_config, "env_file", None)


def test_defaults() -> None:
    s = load_settings()
    assert s.force is False
    assert s.post_process_only is False
    assert s.whisper_model == "large-v3"
    assert s.whisper_language == "en"
    assert s.condition_on_previous_text is False
    assert s.compression_ratio_threshold == 1.8
    assert s.engine_timeout_seconds is None
    assert s.ignore_phrases == DEFAULT_IGNORE_PHRASES


def test_ignore_phrases_default_is_a_copy() -> None:
    s = load_settings()
    s.ignore_phrases.append("dice")
    assert "dice" not in DEFAULT_IGNORE_PHRASES


def test_none_overrides_do_not_mask_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABLESCRIBE_WHISPER_MODEL", "medium")
    assert load_settings(whisper_model=None).whisper_model == "medium"
    assert load_settings(whisper_model="tiny").whisper_model == "tiny"


def test_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABLESCRIBE_ENGINE_TIMEOUT_SECONDS", "900")
    monkeypatch.setenv("TABLESCRIBE_FORCE", "true")
    monkeypatch.setenv("TABLESCRIBE_IGNORE_PHRASES", '["um", "dice roll"]')
    s = load_settings()
    assert s.engine_timeout_seconds == 900.0
    assert s.force is True
    assert s.ignore_phrases == ["um", "dice roll"]


def test_output_dir_defaults_to_sibling(tmp_path: Path) -> None:
    s = load_settings(input_dir=tmp_path / "sessions" / "s12")
    assert resolve_output_dir(s) == tmp_path.resolve() / "sessions" / "transcriptions"


def test_explicit_output_dir(tmp_path: Path) -> None:
    s = load_settings(input_dir=tmp_path / "in", output_dir=tmp_path / "elsewhere")
    assert resolve_output_dir(s) == tmp_path / "elsewhere"
