"""Rule-based bot trigger and responder."""

from .trigger import (
    BOT_RESPONSE_TOPIC,
    DEFAULT_TRIGGER_PHRASES,
    BotResponder,
    BotTrigger,
    LoggingResponseSink,
    ResponseSink,
    TemplateResponder,
)

__all__ = [
    "BOT_RESPONSE_TOPIC",
    "DEFAULT_TRIGGER_PHRASES",
    "BotResponder",
    "BotTrigger",
    "LoggingResponseSink",
    "ResponseSink",
    "TemplateResponder",
]
