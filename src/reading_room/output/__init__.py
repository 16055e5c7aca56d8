"""Output formatters for quotes, news and analyses."""

from reading_room.output.formatters import (
    OutputFormatter,
    TextFormatter,
    JSONFormatter,
    CSVFormatter,
    get_formatter,
)

__all__ = [
    "OutputFormatter",
    "TextFormatter",
    "JSONFormatter",
    "CSVFormatter",
    "get_formatter",
]
