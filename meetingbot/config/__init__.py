"""YAML configuration loader for the meeting bot."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

from ..models.export import ExportOptions
from ..recognition.client import RecognitionConfig

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "recognition": {
        "url": "wss://api.deepgram.com/v1/listen",
        "api_key": None,
        "language": "en",
        "model": "nova-2",
        "diarize": True,
        "punctuate": True,
        "profanity_filter": False,
        "interim_results": True,
        "endpointing": 300,
        "max_reconnect_attempts": 3,
        "backoff_seconds": 2.0,
    },
    "reconciliation": {
        "tolerance_ms": 1000,
    },
    "audio": {
        "sample_rate": 16000,
        "channels": 1,
        "chunk_seconds": 1.0,
    },
    "meeting": {
        "allowed_domains": [
            "meet.google.com",
            "zoom.us",
            "teams.microsoft.com",
            "webex.com",
            "gotomeeting.com",
        ],
    },
    "bot": {
        "enabled": True,
        "respond_to_interim": False,
        "trigger_phrases": ["bot", "assistant", "ai", "hey bot", "bot please"],
    },
    "export": {
        "format": "json",
        "include_transcript": True,
        "include_sentiment": True,
        "include_word_timing": False,
    },
    "storage": {
        "data_directory": "data",
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/meetingbot.log",
        "console_output": True,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base, recursing into nested dictionaries."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class MeetingBotConfig:
    """Meeting bot configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults are used
                        and relative paths resolve against the working directory.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        config = _deep_merge(DEFAULT_CONFIG, loaded)
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        data_dir = config['storage']['data_directory']
        if not os.path.isabs(data_dir):
            config['storage']['data_directory'] = str(config_dir / data_dir)

        log_path = config['logging']['file_path']
        if not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'recognition.language').

        Args:
            key_path: Dot-separated key path (e.g., 'recognition.model')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'export.format')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_api_key(self) -> str:
        """Get the recognition API key from config or DEEPGRAM_API_KEY - raises if absent."""
        api_key = self.get('recognition.api_key') or os.environ.get('DEEPGRAM_API_KEY')
        if not api_key:
            raise ValueError(
                "Recognition API key not configured (recognition.api_key or DEEPGRAM_API_KEY)"
            )
        return api_key

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())

    def allowed_domains(self) -> List[str]:
        """Meeting provider domains a join request may target."""
        return list(self.get('meeting.allowed_domains', []))

    def recognition_config(self) -> RecognitionConfig:
        """Build the recognition client settings from the 'recognition' section."""
        section = self.get('recognition', {})
        return RecognitionConfig(
            url=section['url'],
            language=section['language'],
            model=section['model'],
            diarize=bool(section['diarize']),
            punctuate=bool(section['punctuate']),
            profanity_filter=bool(section['profanity_filter']),
            interim_results=bool(section['interim_results']),
            endpointing=int(section['endpointing']),
            max_reconnect_attempts=int(section['max_reconnect_attempts']),
            backoff_seconds=float(section['backoff_seconds']),
        )

    def export_options(self) -> ExportOptions:
        """Build default export options from the 'export' section."""
        section = self.get('export', {})
        return ExportOptions(
            format=section['format'],
            include_transcript=bool(section['include_transcript']),
            include_sentiment=bool(section['include_sentiment']),
            include_word_timing=bool(section['include_word_timing']),
        )
