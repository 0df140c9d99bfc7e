"""Install-method-aware fix messages for doctor checks.

Each fix_key maps to a function that returns the fix instruction, tailored
to how tablescribe was installed (pipx, or pip inside a venv).
"""

from __future__ import annotations

import platform
import sys
from collections.abc import Callable


def detect_install_method() -> str:
    """Detect how tablescribe was installed.

    Returns one of: "pipx", "venv", "pip".
    """
    exe = sys.executable or ""
    if "/pipx/venvs/" in exe or "\\pipx\\venvs\\" in exe:
        return "pipx"
    if sys.prefix != sys.base_prefix:
        return "venv"
    return "pip"


def get_fix(fix_key: str, install_method: str | None = None) -> str:
    """Get the fix instruction for a given fix_key and install method."""
    if install_method is None:
        install_method = detect_install_method()

    fn = _FIX_TABLE.get(fix_key)
    if fn is None:
        return ""
    return fn(install_method)


# ---------------------------------------------------------------------------
# Fix functions
# ---------------------------------------------------------------------------


def _fix_ffmpeg_missing(_method: str) -> str:
    lines = ["whisper needs FFmpeg to decode audio files.\n"]
    if platform.system() == "Linux":
        lines.append("  Ubuntu/Debian:  sudo apt install ffmpeg")
        lines.append("  Fedora:         sudo dnf install ffmpeg")
        lines.append("  Arch:           sudo pacman -S ffmpeg")
    elif platform.system() == "Darwin":
        lines.append("  brew install ffmpeg")
    else:
        lines.append("  winget install ffmpeg")
        lines.append("  or download from https://ffmpeg.org/download.html")
    return "\n".join(lines)


def _fix_engine_missing(method: str) -> str:
    if method == "pipx":
        return (
            "The whisper command was not found.\n\n"
            "  pipx inject tablescribe openai-whisper --include-apps\n\n"
            "Or point tablescribe at another install:\n"
            "  export TABLESCRIBE_ENGINE_COMMAND=/path/to/whisper"
        )
    if method == "venv":
        return (
            "The whisper command was not found in this virtualenv.\n\n"
            "  pip install 'tablescribe[engine]'\n\n"
            "Or point tablescribe at another install:\n"
            "  export TABLESCRIBE_ENGINE_COMMAND=/path/to/whisper"
        )
    return (
        "The whisper command was not found.\n\n"
        "  pip install openai-whisper\n\n"
        "Make sure pip's script directory is on your PATH, or set\n"
        "  export TABLESCRIBE_ENGINE_COMMAND=/path/to/whisper"
    )


def _fix_low_disk_space(_method: str) -> str:
    return (
        "whisper needs roughly 3 GB for the large-v3 model download.\n"
        "Free up space or use a smaller model:\n\n"
        "  tablescribe run <input> --model small     (500 MB model)\n"
        "  tablescribe run <input> --model base      (150 MB model)"
    )


_FIX_TABLE: dict[str, Callable[[str], str]] = {
    "ffmpeg_missing": _fix_ffmpeg_missing,
    "engine_missing": _fix_engine_missing,
    "low_disk_space": _fix_low_disk_space,
}
