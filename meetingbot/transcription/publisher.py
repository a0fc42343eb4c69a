"""Transcript publisher module for pub/sub event publishing."""

import logging

from pubsub import pub

from ..models.transcription import ReconciledSegment

logger = logging.getLogger(__name__)

TRANSCRIPT_TOPIC = "transcript.segment"


class TranscriptPublisher:
    """Publishes reconciled transcript segments using pubsub.pub."""

    def __init__(self, topic: str = TRANSCRIPT_TOPIC):
        """Initialize transcript publisher.

        Args:
            topic: Pub/sub topic name for reconciled segments
        """
        self.topic = topic
        self.published_count = 0
        logger.info(f"TranscriptPublisher initialized with topic: {topic}")

    def publish(self, reconciled: ReconciledSegment) -> None:
        """Publish a reconciled segment to the pub/sub topic.

        Args:
            reconciled: Append or in-place revision produced by the reconciler
        """
        pub.sendMessage(self.topic, reconciled=reconciled)
        self.published_count += 1
        action = "revision" if reconciled.is_update else "append"
        logger.debug(f"Published segment {reconciled.slot} ({action})")
