"""Meeting service: join, analyze and leave a meeting.

The service wires the pipeline together for one analysis run::

    audio source -> audio queue -> RecognitionClient
    RecognitionClient -> event queue -> SegmentReconciler -> SessionAggregator
                                                          -> transcript.segment topic

Recognition events and client errors share one queue drained by a single
reconciliation task, so transcript state has exactly one writer.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Union

from ..analytics.aggregator import SessionAggregator
from ..analytics.export import ExportEncoder
from ..analytics.sentiment import LexicalSentimentAnalyzer
from ..audio.source import AudioSource, select_audio_source
from ..bot.trigger import BotResponder, BotTrigger, ResponseSink
from ..config import MeetingBotConfig
from ..errors import (
    MalformedMessageError,
    MeetingBotError,
    SessionStateError,
    TerminalConnectionError,
    UnsupportedExportFormatError,
)
from ..models.export import ExportOptions
from ..models.session import MeetingSession
from ..models.transcription import RecognitionEvent
from ..recognition.client import RecognitionClient, RecognitionConfig
from ..recognition.parser import parse_recognition_message
from ..storage.file_manager import FileManager
from ..timeutils import wall_clock_ms
from ..transcription.publisher import TranscriptPublisher
from ..transcription.reconciler import SegmentReconciler
from .meeting_host import JoinResult, MeetingHost

logger = logging.getLogger(__name__)

_STOP = object()

ClientFactory = Callable[[RecognitionConfig], RecognitionClient]


class MeetingService:
    """Owns one reconciler, one aggregator and one recognition client per analysis run."""

    def __init__(self,
                 config: MeetingBotConfig,
                 host: Optional[MeetingHost] = None,
                 file_manager: Optional[FileManager] = None,
                 client_factory: Optional[ClientFactory] = None,
                 response_sink: Optional[ResponseSink] = None,
                 clock: Callable[[], int] = wall_clock_ms):
        """Initialize meeting service.

        Args:
            config: Application configuration
            host: Meeting window host; built from the configured allow-list if omitted
            file_manager: Where exports are written; built from the data directory if omitted
            client_factory: Builds the recognition client for a run
            response_sink: Receives bot replies (logged if omitted)
            clock: Epoch-milliseconds clock shared by the pipeline
        """
        self.config = config
        self.host = host or MeetingHost(config.allowed_domains())
        self.file_manager = file_manager or FileManager(config.get_data_directory())
        self.client_factory = client_factory or self._create_client
        self.response_sink = response_sink
        self.clock = clock

        self.aggregator = SessionAggregator(LexicalSentimentAnalyzer(), clock=clock)
        self.reconciler = SegmentReconciler(config.get('reconciliation.tolerance_ms', 1000), clock=clock)
        self.publisher = TranscriptPublisher()
        self.encoder = ExportEncoder(clock=clock)
        self.bot_responder: Optional[BotResponder] = None

        self.client: Optional[RecognitionClient] = None
        self.audio_source: Optional[AudioSource] = None
        self.meeting_url: Optional[str] = None
        self.status = "Ready"
        self.last_error: Optional[MeetingBotError] = None
        self.errors: List[MeetingBotError] = []
        self.export_path: Optional[str] = None

        self._events: Optional[asyncio.Queue] = None
        self._audio: Optional[asyncio.Queue] = None
        self._reconcile_task: Optional[asyncio.Task] = None
        self._forward_task: Optional[asyncio.Task] = None
        self.audio_finished: Optional[asyncio.Event] = None
        self._left = False

    def _create_client(self, recognition_config: RecognitionConfig) -> RecognitionClient:
        return RecognitionClient(self.config.get_api_key(), recognition_config)

    @property
    def is_analyzing(self) -> bool:
        return self._reconcile_task is not None

    # Meeting window

    def join_meeting(self, url: str) -> JoinResult:
        """Open the meeting page.

        Raises:
            InvalidMeetingUrlError: If the URL is not on the allow-list
        """
        result = self.host.join_meeting(url)
        if result.success:
            self.meeting_url = self.host.meeting_url
            self.status = 'Meeting opened. Start analysis when ready.'
        else:
            self.status = 'Failed to join meeting'
        return result

    # Analysis

    def _start_session(self, session_id: Optional[str]) -> MeetingSession:
        if self.aggregator.is_active:
            raise SessionStateError("Analysis already running. Leave the meeting first.")
        if self.aggregator.is_finalized:
            raise SessionStateError("Meeting already left. Create a new service for another meeting.")

        self.reconciler.reset()
        self._left = False
        self.export_path = None
        session = self.aggregator.start_session(
            session_id or f"session_{self.clock()}",
            self.meeting_url or "",
        )
        if self.config.get('bot.enabled', True):
            self._start_bot()
        return session

    def _start_bot(self) -> None:
        trigger = BotTrigger(self.config.get('bot.trigger_phrases'))
        self.bot_responder = BotResponder(
            trigger,
            transcript_provider=lambda: self.reconciler.segments,
            session_start_provider=self._session_start,
            sink=self.response_sink,
            respond_to_interim=bool(self.config.get('bot.respond_to_interim', False)),
            clock=self.clock,
        )

    def _session_start(self) -> Optional[int]:
        session = self.aggregator.session
        return session.start_timestamp if session else None

    async def start_analysis(self,
                             primary: Optional[AudioSource],
                             fallback: Optional[AudioSource] = None,
                             session_id: Optional[str] = None) -> MeetingSession:
        """Select an audio source, open the recognition stream and start the pipeline.

        Args:
            primary: Preferred audio source (meeting audio)
            fallback: Source used when the primary has no audio (microphone)
            session_id: Explicit session id, generated from the clock if omitted

        Returns:
            Snapshot of the new live session

        Raises:
            NoAudioSourceError: If neither source has audio; nothing is started
            SessionStateError: If a session is already live
        """
        if self.aggregator.is_active:
            raise SessionStateError("Analysis already running. Leave the meeting first.")
        source = select_audio_source(primary, fallback)
        recognition_config = replace(
            self.config.recognition_config(),
            encoding=source.encoding,
            sample_rate=source.sample_rate,
            channels=source.channels,
        )
        self.client = self.client_factory(recognition_config)

        session = self._start_session(session_id)
        loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()
        self._audio = asyncio.Queue()
        self.audio_finished = asyncio.Event()
        self._reconcile_task = asyncio.create_task(self._reconciliation_loop())

        connected = await self.client.connect(self._events.put_nowait, self._events.put_nowait)
        if connected:
            self.status = 'Analyzing meeting audio...'
        else:
            self.status = 'Recording without live transcription (recognition unavailable)'
            logger.warning("Recognition connection not established, continuing in degraded mode")

        self._forward_task = asyncio.create_task(self._forwarding_loop())
        self.audio_source = source
        source.start(lambda chunk: loop.call_soon_threadsafe(self._audio.put_nowait, chunk))
        logger.info(f"Analysis started for session {session.session_id} using {source.name}")
        return session

    async def _reconciliation_loop(self) -> None:
        """Single writer: applies recognition events and records errors in arrival order."""
        while True:
            item = await self._events.get()
            if item is _STOP:
                break
            if isinstance(item, MeetingBotError):
                self._record_error(item)
            else:
                self._apply_event(item)

    async def _forwarding_loop(self) -> None:
        while True:
            chunk = await self._audio.get()
            if chunk is _STOP:
                break
            if chunk.data:
                await self.client.send_audio(chunk)
            if chunk.final:
                self.audio_finished.set()

    def _apply_event(self, event: RecognitionEvent) -> None:
        reconciled = self.reconciler.apply(event)
        if reconciled is None:
            return
        self.aggregator.apply(reconciled)
        self.publisher.publish(reconciled)

    def _record_error(self, error: MeetingBotError) -> None:
        self.last_error = error
        self.errors.append(error)
        if isinstance(error, TerminalConnectionError):
            self.status = 'Recording without live transcription (connection lost)'
            logger.error(f"Transcription error: {error}")
        elif isinstance(error, MalformedMessageError):
            logger.warning(f"Skipped recognition message: {error}")
        else:
            logger.error(f"Pipeline error: {error}")

    async def stop_analysis(self) -> None:
        """Stop audio, close the recognition stream and drain pending events.

        Every event received before the call is applied before this returns.
        """
        if self._reconcile_task is None:
            return

        loop = asyncio.get_running_loop()
        if self.audio_source is not None:
            await loop.run_in_executor(None, self.audio_source.stop)
            self.audio_source = None

        if self._forward_task is not None:
            self._audio.put_nowait(_STOP)
            await self._forward_task
            self._forward_task = None

        if self.client is not None:
            await self.client.disconnect()

        self._events.put_nowait(_STOP)
        await self._reconcile_task
        self._reconcile_task = None

        if self.bot_responder is not None:
            self.bot_responder.shutdown()
        self.status = 'Analysis stopped'
        logger.info("Analysis stopped")

    async def leave_meeting(self, options: Optional[ExportOptions] = None) -> Optional[str]:
        """Stop analysis, finalize the session, export it once and close the meeting.

        Args:
            options: Export options; configured defaults are used if omitted

        Returns:
            Path of the written export, or None if there was nothing left to
            finalize (a repeated leave, or no session)

        Raises:
            UnsupportedExportFormatError: Before anything is torn down
        """
        if self._left:
            logger.info("Meeting already left, nothing to do")
            return None

        options = options or self.config.export_options()
        if not self.encoder.supports(options.format):
            raise UnsupportedExportFormatError(options.format.value)
        self._left = True

        await self.stop_analysis()
        path = self._finalize_and_export(options)
        self.host.close_meeting()
        self.meeting_url = None
        self.status = f'Meeting data exported to {path}' if path else 'Left meeting'
        return path

    def _finalize_and_export(self, options: ExportOptions) -> Optional[str]:
        session = self.aggregator.end_session()
        if session is None:
            return None

        payload = self.encoder.encode(session, options)
        self.export_path = self.file_manager.save_export(payload)
        logger.info(f"Session {session.session_id} exported to {self.export_path}")
        return self.export_path

    # Offline

    def replay(self,
               messages: Iterable[Union[str, bytes]],
               options: Optional[ExportOptions] = None,
               session_id: Optional[str] = None) -> Optional[str]:
        """Run recorded backend messages through the pipeline and export the result.

        Args:
            messages: Raw backend messages in arrival order
            options: Export options; configured defaults are used if omitted
            session_id: Explicit session id

        Returns:
            Path of the written export
        """
        options = options or self.config.export_options()
        if not self.encoder.supports(options.format):
            raise UnsupportedExportFormatError(options.format.value)

        self._start_session(session_id)
        try:
            for raw in messages:
                if not raw or not raw.strip():
                    continue
                try:
                    event = parse_recognition_message(raw)
                except MalformedMessageError as e:
                    self._record_error(e)
                    continue
                if event is not None:
                    self._apply_event(event)
        finally:
            if self.bot_responder is not None:
                self.bot_responder.shutdown()

        self._left = True
        return self._finalize_and_export(options)
