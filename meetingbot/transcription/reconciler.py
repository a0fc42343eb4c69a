"""Reconciliation of interim/final recognition results into one timeline.

The backend re-emits revised results for the same utterance until it
stabilizes. A result whose start lies within the tolerance window of an
earlier segment from the same speaker replaces that segment in place, so an
evolving utterance occupies a single timeline slot.
"""

import bisect
import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..models.transcription import RecognitionEvent, ReconciledSegment, TranscriptSegment
from ..timeutils import wall_clock_ms

logger = logging.getLogger(__name__)


class SegmentReconciler:
    """Merges recognition events into an ordered, de-duplicated transcript."""

    def __init__(self, tolerance_ms: int = 1000, clock: Callable[[], int] = wall_clock_ms):
        """Initialize segment reconciler.

        Args:
            tolerance_ms: Start times closer than this (same speaker) are the same utterance
            clock: Epoch-milliseconds clock used when an event carries no word timing
        """
        self.tolerance_ms = tolerance_ms
        self.clock = clock

        self._timeline: List[TranscriptSegment] = []
        # speaker_index -> sorted [(start_time_ms, slot)]
        self._index: Dict[int, List[Tuple[int, int]]] = {}
        self.degraded_count = 0

    def __len__(self) -> int:
        return len(self._timeline)

    @property
    def segments(self) -> List[TranscriptSegment]:
        return list(self._timeline)

    def to_segment(self, event: RecognitionEvent) -> TranscriptSegment:
        """Convert a recognition event into a transcript segment."""
        if event.words:
            start_ms = event.words[0].start_time_ms
            end_ms = max(start_ms, event.words[-1].end_time_ms)
            degraded = False
        else:
            start_ms = end_ms = self.clock()
            degraded = True

        return TranscriptSegment(
            speaker_label=f"Speaker {event.speaker_index}",
            speaker_index=event.speaker_index,
            text=event.text,
            start_time_ms=start_ms,
            end_time_ms=end_ms,
            confidence=event.confidence,
            words=list(event.words),
            is_final=event.is_final,
            degraded_timing=degraded,
        )

    def _find_slot(self, speaker_index: int, start_ms: int) -> Optional[int]:
        """Most recent slot of this speaker starting strictly within the tolerance window."""
        entries = self._index.get(speaker_index)
        if not entries:
            return None

        low = bisect.bisect_right(entries, (start_ms - self.tolerance_ms, float("inf")))
        high = bisect.bisect_left(entries, (start_ms + self.tolerance_ms, -1))
        candidates = [slot for _, slot in entries[low:high]]
        return max(candidates) if candidates else None

    def _index_remove(self, segment: TranscriptSegment, slot: int) -> None:
        entries = self._index[segment.speaker_index]
        entries.pop(bisect.bisect_left(entries, (segment.start_time_ms, slot)))

    def _index_add(self, segment: TranscriptSegment, slot: int) -> None:
        bisect.insort(self._index.setdefault(segment.speaker_index, []), (segment.start_time_ms, slot))

    def apply(self, event: RecognitionEvent) -> Optional[ReconciledSegment]:
        """Apply one recognition event to the timeline.

        Args:
            event: Interim or final recognition result

        Returns:
            ReconciledSegment describing the append or in-place replacement, or
            None when the timeline did not change (redelivered content, or an
            interim result arriving after its slot was finalized)
        """
        segment = self.to_segment(event)
        if segment.degraded_timing:
            self.degraded_count += 1
            logger.warning(
                f"Recognition event without word timing, using wall clock for speaker {segment.speaker_index}"
            )

        slot = self._find_slot(segment.speaker_index, segment.start_time_ms)
        if slot is None:
            slot = len(self._timeline)
            self._timeline.append(segment)
            self._index_add(segment, slot)
            logger.debug(f"Appended segment {slot} for speaker {segment.speaker_index}: '{segment.text[:50]}'")
            return ReconciledSegment(slot=slot, segment=segment)

        previous = self._timeline[slot]
        if previous == segment:
            logger.debug(f"Segment {slot} redelivered unchanged, ignoring")
            return None
        if previous.is_final and not segment.is_final:
            logger.debug(f"Late interim result for finalized segment {slot}, ignoring")
            return None

        self._index_remove(previous, slot)
        self._timeline[slot] = segment
        self._index_add(segment, slot)
        logger.debug(f"Replaced segment {slot} for speaker {segment.speaker_index}: '{segment.text[:50]}'")
        return ReconciledSegment(slot=slot, segment=segment, previous=previous)

    def reset(self) -> None:
        self._timeline.clear()
        self._index.clear()
        self.degraded_count = 0
