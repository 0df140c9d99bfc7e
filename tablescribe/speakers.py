"""Derive a speaker label from a recording's filename.

Multi-track recorders (Craig, for Discord sessions) name each track
``<track>-<username>_<discriminator>.<ext>``, e.g. ``12-alice_7.flac``.
"""

from __future__ import annotations

import re

_TRACK_NAME_RE = re.compile(r"^\d+-(?P<label>[^_]+)_\d+$")


def strip_extension(file_name: str) -> str:
    """Drop the last extension; a dotfile-style name is returned unchanged."""
    stem, dot, _ext = file_name.rpartition(".")
    if not dot or not stem:
        return file_name
    return stem


def extract_speaker_label(file_name: str) -> str:
    """Return the speaker label for *file_name* (a name, not a path).

    ``"12-alice_7.mp3"`` → ``"alice"``; anything not following the track
    pattern falls back to the name without its extension.
    """
    stem = strip_extension(file_name)
    m = _TRACK_NAME_RE.match(stem)
    if m:
        return m.group("label")
    return stem
