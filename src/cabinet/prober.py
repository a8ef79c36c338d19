"""Read-only queries against the category/record/file tree.

Nothing here caches: every call lists the directory again, and a missing
directory lists as empty rather than raising.
"""

from __future__ import annotations

from pathlib import Path

from cabinet.errors import InvalidNameError
from cabinet.models import SEPARATOR

_FORBIDDEN = ("/", "\\", SEPARATOR, "\n", "\r", "\0")


def validate_name(name: str, kind: str = "name") -> str:
    """Return name if it can be stored as a category, record or file name."""
    if not name or name != name.strip():
        msg = f"Invalid {kind}: {name!r}"
        raise InvalidNameError(msg)
    if name.startswith("."):
        msg = f"Invalid {kind} (hidden names are not listed): {name!r}"
        raise InvalidNameError(msg)
    bad = [c for c in _FORBIDDEN if c in name]
    if bad:
        msg = f"Invalid {kind} (contains {bad[0]!r}): {name!r}"
        raise InvalidNameError(msg)
    return name


class DirectoryProber:
    """Lists categories, records and data files under a data root."""

    def __init__(self, data_dir: Path | str, index_suffix: str = "data.txt") -> None:
        self.data_dir = Path(data_dir)
        self.index_suffix = index_suffix

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def category_dir(self, category: str) -> Path:
        return self.data_dir / category

    def record_dir(self, category: str, record: str) -> Path:
        return self.data_dir / category / record

    def index_name(self, record: str) -> str:
        return f"{record}{self.index_suffix}"

    def index_path(self, category: str, record: str) -> Path:
        return self.record_dir(category, record) / self.index_name(record)

    def is_reserved(self, record: str, name: str) -> bool:
        """True if name is the record's index or its temp file."""
        index_name = self.index_name(record)
        return name in (index_name, index_name + ".tmp")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_categories(self) -> set[str]:
        return {p.name for p in _subdirs(self.data_dir)}

    def list_records(self, category: str) -> list[str]:
        return sorted(p.name for p in _subdirs(self.category_dir(category)))

    def list_files(self, category: str, record: str) -> set[str]:
        """Data files of a record: every regular file except its own index."""
        directory = self.record_dir(category, record)
        try:
            return {
                p.name for p in directory.iterdir()
                if not self.is_reserved(record, p.name) and p.is_file()
            }
        except OSError:
            return set()


def _subdirs(directory: Path) -> list[Path]:
    try:
        return [p for p in directory.iterdir() if p.is_dir() and not p.name.startswith(".")]
    except OSError:
        return []
