"""Transcript reconciliation and publishing."""

from .reconciler import SegmentReconciler
from .publisher import TranscriptPublisher, TRANSCRIPT_TOPIC

__all__ = ["SegmentReconciler", "TranscriptPublisher", "TRANSCRIPT_TOPIC"]
