"""Per-record metadata index: ``<category>/<record>/<record>data.txt``.

Two update paths:

    append_entry(name)   fast path for uploads; counts existing lines and
                         appends one, never lists the record directory
    full_sync()          bidirectional reconciliation against the files on
                         disk; only the reconciler calls it, and only for
                         categories the manifest has flagged dirty

remove_entry and full_sync rewrite the whole file through a temp file and
an atomic rename, so a crash leaves either the old or the new index.
"""

from __future__ import annotations

import contextlib
import logging
import os
from datetime import datetime
from typing import TYPE_CHECKING

from cabinet.errors import IndexWriteError
from cabinet.models import DEFAULT_TIMESTAMP_FORMAT, MetadataEntry, format_timestamp

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path

    from cabinet.prober import DirectoryProber

logger = logging.getLogger("cabinet.index")


class MetadataIndex:
    """The metadata index of one record."""

    def __init__(
        self,
        prober: DirectoryProber,
        category: str,
        record: str,
        *,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.prober = prober
        self.category = category
        self.record = record
        self.timestamp_format = timestamp_format
        self.clock = clock

    def __repr__(self) -> str:
        return f"MetadataIndex({self.category!r}, {self.record!r})"

    @property
    def path(self) -> Path:
        return self.prober.index_path(self.category, self.record)

    def _now(self) -> str:
        return format_timestamp(self.clock(), self.timestamp_format)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read_lines(self) -> list[str]:
        """Raw lines of the index. Missing or unreadable reads as empty."""
        path = self.path
        if not path.exists():
            return []
        try:
            with path.open(encoding="utf-8") as f:
                return f.readlines()
        except OSError as exc:
            logger.warning("could not read index %s/%s: %s", self.category, self.record, exc)
            return []

    def read_entries(self) -> list[MetadataEntry]:
        """Parsed entries in file order. Malformed lines are skipped."""
        entries = []
        for line in self.read_lines():
            entry = MetadataEntry.decode(line)
            if entry is not None:
                entries.append(entry)
        return entries

    def count_entries(self) -> int:
        """Number of lines in the index, without parsing them."""
        path = self.path
        if not path.exists():
            return 0
        try:
            with path.open("rb") as f:
                return sum(1 for _ in f)
        except OSError as exc:
            logger.warning("could not count index %s/%s: %s", self.category, self.record, exc)
            return 0

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def append_entry(self, file_name: str) -> MetadataEntry:
        """Append one entry numbered after the existing lines.

        The caller has already checked that file_name exists in the record
        and is not indexed yet.
        """
        entry = MetadataEntry(self.count_entries(), file_name, self._now())
        path = self.path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            lead = "\n" if _lacks_final_newline(path) else ""
            with path.open("a", encoding="utf-8") as f:
                f.write(lead + entry.encode())
        except OSError as exc:
            msg = f"Could not append to index {self.category}/{self.record}: {exc}"
            raise IndexWriteError(msg) from exc
        logger.debug("appended %s/%s #%d %s", self.category, self.record, entry.index, file_name)
        return entry

    def remove_entry(self, file_name: str) -> bool:
        """Drop the first entry named file_name and renumber the rest.

        No-op if the index does not exist. Returns True if an entry was
        removed.
        """
        if not self.path.exists():
            return False
        entries = self.read_entries()
        for i, entry in enumerate(entries):
            if entry.file_name == file_name:
                del entries[i]
                removed = True
                break
        else:
            removed = False
        self._rewrite(entries)
        return removed

    def full_sync(self) -> bool:
        """Make the index list exactly the files in the record.

        Stale entries are pruned, unindexed files are adopted with the
        current timestamp, survivors keep their timestamps and relative
        order. The file is rewritten whenever its canonical form differs
        from the bytes on disk, so malformed lines, duplicate names, gaps in
        the numbering or a missing final newline are repaired even when no
        entry was pruned or adopted. A file already in canonical form is
        left untouched. Returns True if it was rewritten.
        """
        if not self.prober.record_dir(self.category, self.record).is_dir():
            return False
        lines = self.read_lines()
        on_disk = self.prober.list_files(self.category, self.record)

        kept: list[MetadataEntry] = []
        seen: set[str] = set()
        stale = 0
        for line in lines:
            entry = MetadataEntry.decode(line)
            if entry is None:
                continue
            if entry.file_name not in on_disk:
                stale += 1
                continue
            if entry.file_name in seen:
                continue
            seen.add(entry.file_name)
            kept.append(entry)

        now = self._now()
        adopted = [MetadataEntry(0, name, now) for name in sorted(on_disk - seen)]

        final = _renumber([*kept, *adopted], now)
        if [e.encode() for e in final] == lines:
            logger.debug("index %s/%s already in sync", self.category, self.record)
            return False

        self._write_atomic(final)
        logger.info(
            "synced index %s/%s: %d stale, %d adopted, %d entries",
            self.category, self.record, stale, len(adopted), len(final),
        )
        return True

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _rewrite(self, entries: Iterable[MetadataEntry]) -> None:
        self._write_atomic(_renumber(entries, self._now()))

    def _write_atomic(self, entries: list[MetadataEntry]) -> None:
        """Write entries to a temp file, then rename it over the index."""
        path = self.path
        tmp = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                f.writelines(e.encode() for e in entries)
            tmp.replace(path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            msg = f"Could not write index {self.category}/{self.record}: {exc}"
            raise IndexWriteError(msg) from exc


def _renumber(entries: Iterable[MetadataEntry], now: str) -> list[MetadataEntry]:
    return [
        MetadataEntry(i, e.file_name, e.timestamp or now)
        for i, e in enumerate(entries)
    ]


def _lacks_final_newline(path: Path) -> bool:
    """True if path is a non-empty file whose last byte is not a newline."""
    if not path.exists():
        return False
    with path.open("rb") as f:
        f.seek(0, os.SEEK_END)
        if f.tell() == 0:
            return False
        f.seek(-1, os.SEEK_END)
        return f.read(1) != b"\n"
