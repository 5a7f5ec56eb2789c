"""Fixed-size windowing over the full segment sequence."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from subtranslate.models.segment import BatchItem, TranscriptSegment


@dataclass(frozen=True)
class Window:
    """A contiguous chunk of segments; local ids are positions 0..len-1."""

    index: int
    offset: int
    segments: tuple[TranscriptSegment, ...]

    def __len__(self) -> int:
        return len(self.segments)

    def batch_items(self) -> list[BatchItem]:
        return [BatchItem(id=i, text=seg.text) for i, seg in enumerate(self.segments)]


def iter_windows(segments: Sequence[TranscriptSegment], window_size: int) -> Iterator[Window]:
    """Yield contiguous windows of `window_size`; the last one may be shorter."""
    size = int(window_size)
    if size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    for index, offset in enumerate(range(0, len(segments), size)):
        yield Window(index=index, offset=offset, segments=tuple(segments[offset : offset + size]))
