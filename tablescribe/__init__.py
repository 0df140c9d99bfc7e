"""tablescribe: batch transcription and transcript merging for session recordings."""

__version__ = "0.3.0"
