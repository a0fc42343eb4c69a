"""Export request and payload models."""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..errors import UnsupportedExportFormatError


class ExportFormat(Enum):
    """Report formats understood by the export encoder."""
    STRUCTURED = "json"
    TABULAR = "csv"
    SPREADSHEET = "xlsx"  # Recognized, not implemented

    @classmethod
    def parse(cls, value: Union[str, "ExportFormat"]) -> "ExportFormat":
        """Accept an enum member, its value ("json") or its name ("structured")."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise UnsupportedExportFormatError(str(value))


@dataclass
class ExportOptions:
    """What to include in an exported report."""
    format: ExportFormat = ExportFormat.STRUCTURED
    include_transcript: bool = True
    include_sentiment: bool = True
    include_word_timing: bool = False

    def __post_init__(self):
        self.format = ExportFormat.parse(self.format)


@dataclass
class ExportPayload:
    """Encoded report ready to be written or downloaded."""
    data: bytes
    mime_type: str
    basename: str
    extension: str

    @property
    def filename(self) -> str:
        return f"{self.basename}{self.extension}"
