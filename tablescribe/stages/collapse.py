"""Merge runs of repeated segments from the same speaker."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from tablescribe.models import Segment


def _same_utterance(a: Segment, b: Segment) -> bool:
    return a.speaker == b.speaker and a.text.lower() == b.text.lower()


def collapse_segments(segments: Iterable[Segment]) -> Iterator[Segment]:
    """Fold consecutive same-speaker, same-text segments into one.

    The merged segment keeps the first segment's ``start`` and takes the
    ``end`` of the last segment in the run.  Whisper loops ("I'm going to
    attack. I'm going to attack. ...") collapse to a single line.
    """
    current: Segment | None = None
    for seg in segments:
        if current is not None and _same_utterance(current, seg):
            current = current.model_copy(update={"end": seg.end})
            continue
        if current is not None:
            yield current
        current = seg
    if current is not None:
        yield current
