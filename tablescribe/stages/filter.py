"""Drop segments whose whole text is an ignored phrase."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from tablescribe.models import Segment

logger = logging.getLogger(__name__)

# A single one of these may follow an ignored phrase and still match.
TRAILING_PUNCTUATION = frozenset(".,!?;:")


class IgnoreFilter:
    """Case-insensitive whole-text filter over segments.

    A segment is dropped when its text equals an ignore phrase, optionally
    followed by exactly one trailing punctuation mark.  There is no
    substring matching: ``"um"`` drops ``"Um."`` but keeps ``"umbrella"``.
    """

    def __init__(self, phrases: Iterable[str]) -> None:
        self.phrases = frozenset(p.strip().lower() for p in phrases if p.strip())
        self.dropped = 0

    def matches(self, text: str) -> bool:
        t = text.strip().lower()
        if t in self.phrases:
            return True
        return len(t) > 1 and t[-1] in TRAILING_PUNCTUATION and t[:-1] in self.phrases

    def keeps(self, segment: Segment) -> bool:
        """Return False (and count the drop) if *segment* should be filtered out."""
        if self.matches(segment.text):
            self.dropped += 1
            logger.debug("Dropped %s@%s: %r", segment.speaker, segment.start, segment.text)
            return False
        return True

    def apply(self, segments: Iterable[Segment]) -> Iterator[Segment]:
        for seg in segments:
            if self.keeps(seg):
                yield seg
