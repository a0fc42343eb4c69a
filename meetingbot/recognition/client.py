"""Streaming speech recognition client over an aiohttp websocket."""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

import aiohttp

from ..errors import (
    MalformedMessageError,
    MeetingBotError,
    TerminalConnectionError,
    TransientNetworkError,
)
from ..models.audio import AudioChunk
from ..models.transcription import RecognitionEvent
from .parser import parse_recognition_message

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006

EventSink = Callable[[RecognitionEvent], None]
ErrorSink = Callable[[MeetingBotError], None]


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class RecognitionConfig:
    """Recognition backend settings sent as query parameters."""
    url: str = "wss://api.deepgram.com/v1/listen"
    language: str = "en"
    model: str = "nova-2"
    diarize: bool = True
    punctuate: bool = True
    profanity_filter: bool = False
    interim_results: bool = True
    endpointing: int = 300
    max_reconnect_attempts: int = 3
    backoff_seconds: float = 2.0
    encoding: Optional[str] = None  # Set for raw PCM audio, e.g. "linear16"
    sample_rate: Optional[int] = None
    channels: Optional[int] = None

    def to_query(self) -> Dict[str, str]:
        def flag(value: bool) -> str:
            return "true" if value else "false"

        query = {
            "language": self.language,
            "model": self.model,
            "diarize": flag(self.diarize),
            "punctuate": flag(self.punctuate),
            "profanity_filter": flag(self.profanity_filter),
            "interim_results": flag(self.interim_results),
            "endpointing": str(self.endpointing),
        }
        if self.encoding:
            query["encoding"] = self.encoding
            if self.sample_rate:
                query["sample_rate"] = str(self.sample_rate)
            if self.channels:
                query["channels"] = str(self.channels)
        return query

    @property
    def bytes_per_ms(self) -> Optional[float]:
        """Raw PCM throughput, or None when the audio is not linear16."""
        if self.encoding != "linear16" or not self.sample_rate:
            return None
        return self.sample_rate * (self.channels or 1) * 2 / 1000.0


class RecognitionClient:
    """Owns the persistent connection to the recognition backend.

    Audio goes out as binary frames; results come back as JSON text frames and
    are handed to the event sink in arrival order. Abnormal closes are retried
    with linear backoff (attempt x backoff_seconds) until the retry budget is
    spent, then a TerminalConnectionError is reported through the error sink.

    Every backend stream times its words from zero. Word times are shifted by
    a stream offset so results from a reconnected stream continue the timeline
    of the previous one instead of colliding with it.
    """

    def __init__(self,
                 api_key: str,
                 config: Optional[RecognitionConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """Initialize recognition client.

        Args:
            api_key: Backend API key, sent as an Authorization token
            config: Connection settings; defaults are used when omitted
            session: aiohttp session to connect with; one is created (and owned) if omitted
            sleep: Coroutine used for backoff delays
        """
        if not api_key:
            raise ValueError("Recognition API key is required")
        self.api_key = api_key
        self.config = config or RecognitionConfig()
        self.state = ConnectionState.DISCONNECTED

        self._session = session
        self._owns_session = session is None
        self._sleep = sleep
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._supervisor: Optional[asyncio.Task] = None
        self._first_attempt_done: Optional[asyncio.Event] = None
        self._closing = False
        self._sink: Optional[EventSink] = None
        self._error_sink: Optional[ErrorSink] = None

        self.reconnect_attempts = 0
        self.chunks_sent = 0
        self.dropped_chunks = 0

        self.stream_offset_ms = 0
        self._latest_end_ms = 0
        self._audio_sent_ms = 0.0

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED and self._ws is not None and not self._ws.closed

    async def connect(self, sink: EventSink, error_sink: ErrorSink) -> bool:
        """Open the connection and start receiving.

        Args:
            sink: Called with every actionable RecognitionEvent
            error_sink: Called with malformed-message and terminal connection errors

        Returns:
            True if the first connection attempt opened
        """
        if self._supervisor is not None and not self._supervisor.done():
            logger.warning("Recognition client already running")
            return self.is_connected

        self._sink = sink
        self._error_sink = error_sink
        self._closing = False
        self.reconnect_attempts = 0
        self.stream_offset_ms = 0
        self._latest_end_ms = 0
        self._audio_sent_ms = 0.0
        if self._session is None:
            self._session = aiohttp.ClientSession()

        self._first_attempt_done = asyncio.Event()
        self._supervisor = asyncio.create_task(self._run())
        self._supervisor.set_name("recognition-supervisor")
        await self._first_attempt_done.wait()
        return self.is_connected

    async def _run(self) -> None:
        """Connection supervisor: connect, receive until closed, back off, retry."""
        try:
            while not self._closing:
                close_code = await self._connect_once()

                self.state = ConnectionState.DISCONNECTED
                self._signal_first_attempt()
                if self._closing:
                    break

                if close_code == NORMAL_CLOSURE:
                    logger.info("Recognition connection closed normally by the server")
                    self._report(TerminalConnectionError(
                        "Recognition backend closed the connection",
                        attempts=self.reconnect_attempts,
                        close_code=close_code,
                    ))
                    break

                self.reconnect_attempts += 1
                if self.reconnect_attempts >= self.config.max_reconnect_attempts:
                    logger.error(
                        f"Recognition reconnect budget exhausted after {self.reconnect_attempts} failures "
                        f"(last close code {close_code})"
                    )
                    self._report(TerminalConnectionError(
                        f"Recognition connection lost after {self.reconnect_attempts} attempts",
                        attempts=self.reconnect_attempts,
                        close_code=close_code,
                    ))
                    break

                delay = self.reconnect_attempts * self.config.backoff_seconds
                transient = TransientNetworkError(
                    f"Connection closed with code {close_code}; retry "
                    f"{self.reconnect_attempts}/{self.config.max_reconnect_attempts} in {delay:.1f}s"
                )
                logger.warning(str(transient))
                self.state = ConnectionState.CONNECTING
                await self._sleep(delay)
        finally:
            self.state = ConnectionState.DISCONNECTED
            self._ws = None
            self._signal_first_attempt()

    async def _connect_once(self) -> int:
        """Open one websocket and receive until it closes.

        Returns:
            The close code; handshake failures count as an abnormal closure
        """
        self.state = ConnectionState.CONNECTING
        headers = {"Authorization": f"Token {self.api_key}"}
        try:
            ws = await self._session.ws_connect(
                self.config.url,
                params=self.config.to_query(),
                headers=headers,
                heartbeat=30.0,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning(f"Recognition connection attempt failed: {e}")
            return ABNORMAL_CLOSURE

        self._ws = ws
        self.state = ConnectionState.CONNECTED
        self.reconnect_attempts = 0
        self.stream_offset_ms = max(self._latest_end_ms, int(self._audio_sent_ms))
        logger.info(f"Recognition websocket connection opened (stream offset {self.stream_offset_ms}ms)")
        self._signal_first_attempt()

        try:
            async for message in ws:
                if message.type == aiohttp.WSMsgType.TEXT:
                    self._handle_message(message.data)
                elif message.type == aiohttp.WSMsgType.BINARY:
                    self._handle_message(message.data)
                elif message.type == aiohttp.WSMsgType.ERROR:
                    logger.warning(f"Recognition websocket error: {ws.exception()}")
                    break
        finally:
            self._ws = None

        close_code = ws.close_code
        logger.info(f"Recognition websocket closed: code={close_code}")
        return close_code if close_code is not None else ABNORMAL_CLOSURE

    def _handle_message(self, raw) -> None:
        try:
            event = parse_recognition_message(raw)
        except MalformedMessageError as e:
            logger.error(f"Error processing recognition message: {e.message}")
            self._report(e)
            return

        if event is None:
            return
        event = self._shift_to_session_time(event)
        logger.debug(
            f"Recognition event: speaker={event.speaker_index} final={event.is_final} "
            f"text='{event.text[:50]}'"
        )
        self._sink(event)

    def _shift_to_session_time(self, event: RecognitionEvent) -> RecognitionEvent:
        if not event.words:
            return event
        offset = self.stream_offset_ms
        if offset:
            event = replace(event, words=[
                replace(w, start_time_ms=w.start_time_ms + offset, end_time_ms=w.end_time_ms + offset)
                for w in event.words
            ])
        self._latest_end_ms = max(self._latest_end_ms, max(w.end_time_ms for w in event.words))
        return event

    def _report(self, error: MeetingBotError) -> None:
        if self._error_sink:
            self._error_sink(error)

    def _signal_first_attempt(self) -> None:
        if self._first_attempt_done is not None and not self._first_attempt_done.is_set():
            self._first_attempt_done.set()

    async def send_audio(self, chunk: AudioChunk) -> bool:
        """Forward an audio chunk if the connection is open; drop it otherwise.

        Returns:
            True if the chunk was sent
        """
        if not self.is_connected:
            self.dropped_chunks += 1
            logger.debug(f"Recognition not connected, dropping audio chunk {chunk.sequence_number}")
            return False

        try:
            await self._ws.send_bytes(chunk.data)
        except (ConnectionResetError, aiohttp.ClientError) as e:
            self.dropped_chunks += 1
            logger.warning(f"Failed to send audio chunk {chunk.sequence_number}: {e}")
            return False

        self.chunks_sent += 1
        bytes_per_ms = self.config.bytes_per_ms
        if bytes_per_ms:
            self._audio_sent_ms += len(chunk.data) / bytes_per_ms
        return True

    async def wait_closed(self) -> None:
        """Wait until the supervisor gives up or is stopped."""
        if self._supervisor is not None:
            await asyncio.shield(self._supervisor)

    async def disconnect(self) -> None:
        """Close the connection intentionally and suppress further reconnects."""
        self._closing = True
        ws = self._ws
        if ws is not None and not ws.closed:
            await ws.close(code=NORMAL_CLOSURE, message=b"Intentional disconnect")

        if self._supervisor is not None:
            if not self._supervisor.done():
                self._supervisor.cancel()
            try:
                await self._supervisor
            except asyncio.CancelledError:
                pass
            self._supervisor = None

        self.state = ConnectionState.DISCONNECTED
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        logger.info(f"Recognition client disconnected (sent={self.chunks_sent}, dropped={self.dropped_chunks})")
