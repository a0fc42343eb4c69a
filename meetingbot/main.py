"""Main application entry point for the meeting bot."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from meetingbot.analytics.summary import summarize_session
from meetingbot.audio.capture import MicrophoneSource
from meetingbot.audio.file_source import WavFileSource
from meetingbot.errors import MeetingBotError, UnsupportedExportFormatError
from meetingbot.models.export import ExportOptions
from meetingbot.models.session import MeetingSession
from meetingbot.services.meeting_service import MeetingService
from meetingbot.timeutils import wall_clock_ms

from .config import MeetingBotConfig

logger = logging.getLogger(__name__)

# Time left for the backend to flush final results after the audio ends
SETTLE_SECONDS = 2.0


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = MeetingBotConfig(config_path)
        # Command line level overrides config
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.console = Console()
        self.service: Optional[MeetingService] = None

    def init(self) -> None:
        logger.info("Initializing services...")
        self.service = MeetingService(self.config)

    def export_options(self, export_format: Optional[str]) -> ExportOptions:
        options = self.config.export_options()
        if export_format:
            options = ExportOptions(
                format=export_format,
                include_transcript=options.include_transcript,
                include_sentiment=options.include_sentiment,
                include_word_timing=options.include_word_timing,
            )
        return options

    async def run_live(self,
                       url: Optional[str],
                       audio_file: Optional[str],
                       use_mic: bool,
                       duration: Optional[float],
                       options: ExportOptions) -> Optional[str]:
        """Join, analyze until the audio ends (or duration elapses), then leave."""
        if not self.service.encoder.supports(options.format):
            raise UnsupportedExportFormatError(options.format.value)
        if url:
            self.service.join_meeting(url)

        sample_rate = self.config.get('audio.sample_rate', 16000)
        channels = self.config.get('audio.channels', 1)
        chunk_seconds = self.config.get('audio.chunk_seconds', 1.0)
        logger.info(f"Audio settings: {sample_rate}Hz, {channels} channels, {chunk_seconds}s chunks")

        primary = WavFileSource(audio_file, chunk_seconds=chunk_seconds) if audio_file else None
        fallback = MicrophoneSource(sample_rate, channels, chunk_seconds) if use_mic else None

        await self.service.start_analysis(primary, fallback)
        try:
            try:
                await asyncio.wait_for(self.service.audio_finished.wait(), timeout=duration)
                if self.service.client is not None and self.service.client.is_connected:
                    await asyncio.sleep(SETTLE_SECONDS)
            except asyncio.TimeoutError:
                logger.info(f"Duration of {duration}s reached")
        finally:
            path = await self.service.leave_meeting(options)
        return path

    def run_replay(self, replay_file: str, options: ExportOptions) -> Optional[str]:
        """Reconcile a JSON-lines capture of backend messages offline."""
        with open(replay_file, 'r', encoding='utf-8') as f:
            return self.service.replay(f, options)

    def print_summary(self, export_path: Optional[str]) -> None:
        session = self.service.aggregator.snapshot()
        if session is None:
            self.console.print("No session recorded.")
            return

        self.console.print(build_summary_table(session))
        for error in self.service.errors[-3:]:
            self.console.print(f"[yellow]{error}[/yellow]")
        if export_path:
            self.console.print(f"Export written to [bold]{export_path}[/bold]")


def build_summary_table(session: MeetingSession) -> Table:
    """Per-participant overview of a session."""
    summary = summarize_session(session, wall_clock_ms())

    table = Table(
        title=f"Meeting {session.session_id}",
        caption=(
            f"{summary.total_participants} participants, {summary.total_words} words, "
            f"{summary.total_duration_ms / 60000:.1f} min, "
            f"{summary.average_participation:.1f}% speaking"
        ),
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Participant", style="cyan")
    table.add_column("Segments", justify="right")
    table.add_column("Spoken (min)", justify="right")
    table.add_column("Attended (min)", justify="right")
    table.add_column("Sentiment")

    sentiment_styles = {"positive": "green", "negative": "red", "neutral": "white"}
    for participant in session.participants.values():
        style = sentiment_styles.get(participant.sentiment.label, "white")
        table.add_row(
            participant.display_name,
            str(len(participant.transcript)),
            f"{participant.accumulated_speaking_ms / 60000:.2f}",
            f"{participant.total_time_attended_ms / 60000:.2f}",
            f"[{style}]{participant.sentiment.label} ({participant.sentiment.score:+.2f})[/{style}]",
        )
    return table


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/meetingbot.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - warnings and above only
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("Meeting bot starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="meetingbot - Live meeting transcription and analytics",
        epilog="Stream a WAV file or the microphone to the recognition backend, or replay a capture offline."
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )
    parser.add_argument(
        "--url",
        type=str,
        help="Meeting URL to open (must be on the allowed domain list)"
    )
    parser.add_argument(
        "--audio-file",
        type=str,
        help="16-bit PCM WAV file streamed as the meeting audio"
    )
    parser.add_argument(
        "--mic",
        action="store_true",
        help="Use the microphone when no meeting audio is available"
    )
    parser.add_argument(
        "--duration",
        type=float,
        help="Stop analysis after this many seconds (default: until the audio ends)"
    )
    parser.add_argument(
        "--replay",
        type=str,
        metavar="FILE",
        help="Reconcile recorded backend messages (one JSON object per line) without connecting"
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["json", "csv", "xlsx"],
        help="Export format (default: from config, json)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="meetingbot v0.1.0"
    )
    return parser


def main() -> None:
    """Main entry point for the meeting bot."""
    args = build_parser().parse_args()

    if not args.replay and not args.audio_file and not args.mic:
        print("Nothing to analyze: pass --audio-file, --mic or --replay", file=sys.stderr)
        sys.exit(2)

    server = Server(args.config, args.log_level)
    try:
        server.init()
        options = server.export_options(args.format)
        if args.replay:
            export_path = server.run_replay(args.replay, options)
        else:
            export_path = asyncio.run(server.run_live(
                args.url, args.audio_file, args.mic, args.duration, options
            ))
        server.print_summary(export_path)
    except KeyboardInterrupt:
        print("\nInterrupted")
    except MeetingBotError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.error(f"Application error: {e}")
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
