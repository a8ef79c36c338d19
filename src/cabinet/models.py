"""Line codecs for the two flat files the store owns.

Metadata index (``<record>data.txt``), one line per file::

    0|report.pdf|19-10-2026 04:45 PM

Manifest (``manifest.txt``), one line per category::

    Grade7|false

``|`` is the field separator in both files. All parsing and rendering of
these lines goes through this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

SEPARATOR = "|"

# dd-MM-yyyy hh:mm a
DEFAULT_TIMESTAMP_FORMAT = "%d-%m-%Y %I:%M %p"


def format_timestamp(when: datetime | None = None, fmt: str = DEFAULT_TIMESTAMP_FORMAT) -> str:
    return (when or datetime.now()).strftime(fmt)


@dataclass
class MetadataEntry:
    """One row of a record's metadata index."""

    index: int
    file_name: str
    timestamp: str = ""

    @classmethod
    def decode(cls, line: str) -> MetadataEntry | None:
        """Parse one index line. Returns None for malformed lines.

        A line needs at least the index and file name fields; a missing
        timestamp decodes as "" and is filled in on the next rewrite.
        """
        parts = line.rstrip("\r\n").split(SEPARATOR)
        if len(parts) < 2 or not parts[1]:
            return None
        try:
            index = int(parts[0])
        except ValueError:
            index = -1
        timestamp = parts[2] if len(parts) >= 3 else ""
        return cls(index=index, file_name=parts[1], timestamp=timestamp)

    def encode(self) -> str:
        return f"{self.index}{SEPARATOR}{self.file_name}{SEPARATOR}{self.timestamp}\n"


def decode_flag(line: str) -> tuple[str, bool] | None:
    """Parse one manifest line into (category, dirty). None if malformed."""
    parts = line.rstrip("\r\n").split(SEPARATOR)
    if len(parts) != 2 or not parts[0]:
        return None
    return parts[0], parts[1] == "true"


def encode_flag(category: str, dirty: bool) -> str:
    return f"{category}{SEPARATOR}{'true' if dirty else 'false'}\n"
