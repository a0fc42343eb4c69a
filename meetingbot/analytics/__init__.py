"""Session analytics: aggregation, sentiment, summaries and export."""

from .aggregator import SessionAggregator, placeholder_participant_id
from .export import ExportEncoder, decode_structured
from .sentiment import SentimentAnalyzer, LexicalSentimentAnalyzer
from .summary import count_words, summarize_session

__all__ = [
    "SessionAggregator",
    "placeholder_participant_id",
    "ExportEncoder",
    "decode_structured",
    "SentimentAnalyzer",
    "LexicalSentimentAnalyzer",
    "count_words",
    "summarize_session",
]
