"""Manifest registry: one dirty flag per category, persisted to manifest.txt.

    Grade7|false
    Grade8|true

true means the category may have drifted from its metadata indexes and
needs a full sync; false means the last sync is still believed valid.

The registry is loaded once and flushed only when a flag actually changes.
Before answering "which categories need a sync" it reconciles itself with
the directory tree: new categories are added as dirty, vanished ones are
dropped, and clean ones are checked for drift by comparing the number of
data files against the number of index lines. Counting catches added and
deleted files but not an external rename, which keeps both counts equal.
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from cabinet.errors import ManifestWriteError
from cabinet.index import MetadataIndex
from cabinet.models import decode_flag, encode_flag

if TYPE_CHECKING:
    from collections.abc import Mapping

    from cabinet.prober import DirectoryProber

logger = logging.getLogger("cabinet.manifest")


class ManifestRegistry:
    """Category name -> dirty flag, backed by a single flat file."""

    def __init__(self, path: Path | str, prober: DirectoryProber) -> None:
        self.path = Path(path)
        self.prober = prober
        self._flags: dict[str, bool] | None = None
        self.writes = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> dict[str, bool]:
        """Read manifest.txt into memory. Unreadable reads as empty."""
        flags: dict[str, bool] = {}
        if self.path.exists():
            try:
                with self.path.open(encoding="utf-8") as f:
                    for line in f:
                        parsed = decode_flag(line)
                        if parsed is not None:
                            flags[parsed[0]] = parsed[1]
            except OSError as exc:
                logger.warning("could not read manifest %s: %s", self.path, exc)
                flags = {}
        self._flags = flags
        return flags

    def invalidate(self) -> None:
        """Drop the in-memory flags; the next access reloads from disk."""
        self._flags = None

    @property
    def flags(self) -> dict[str, bool]:
        if self._flags is None:
            return self.load()
        return self._flags

    def snapshot(self) -> Mapping[str, bool]:
        """Read-only view of the current flags (no disk access once loaded)."""
        return MappingProxyType(self.flags)

    def flush(self) -> None:
        """Rewrite manifest.txt from memory via temp file + rename."""
        if self._flags is None:
            return
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                f.writelines(encode_flag(c, d) for c, d in sorted(self._flags.items()))
            tmp.replace(self.path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            msg = f"Could not write manifest {self.path}: {exc}"
            raise ManifestWriteError(msg) from exc
        self.writes += 1

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    def mark_changed(self, category: str) -> bool:
        """Flag category dirty. Persists only if the flag changed."""
        return self._set(category, dirty=True)

    def mark_scanned(self, category: str) -> bool:
        """Flag category clean. Persists only if the flag changed."""
        return self._set(category, dirty=False)

    def _set(self, category: str, *, dirty: bool) -> bool:
        if not category or not category.strip():
            return False
        flags = self.flags
        if flags.get(category) is dirty:
            return False
        flags[category] = dirty
        self.flush()
        return True

    def rename_category(self, old: str, new: str) -> None:
        """Move old's flag to new (clean if old was unknown). Always persists."""
        flags = self.flags
        flags[new] = flags.pop(old, False)
        self.flush()

    def remove_category(self, category: str) -> bool:
        """Forget a category. Persists only if it was known."""
        flags = self.flags
        if category not in flags:
            return False
        del flags[category]
        self.flush()
        return True

    def folders_needing_sync(self) -> list[str]:
        """Reconcile with the tree, then return every dirty category."""
        self.reconcile()
        return sorted(c for c, dirty in self.flags.items() if dirty)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self) -> bool:
        """Bring the flags in line with the categories on disk.

        Returns True if anything changed (and was persisted).
        """
        flags = self.flags
        on_disk = self.prober.list_categories()
        changed = False

        for category in sorted(on_disk - set(flags)):
            flags[category] = True
            changed = True
            logger.info("new category %s: marked dirty", category)

        for category in [c for c in flags if c not in on_disk]:
            del flags[category]
            changed = True
            logger.info("category %s gone from disk: forgotten", category)

        for category in sorted(on_disk):
            if flags[category]:
                continue
            files = self.count_files_on_disk(category)
            entries = self.count_entries_in_index(category)
            if files != entries:
                flags[category] = True
                changed = True
                logger.info("drift in %s: %d files, %d index entries", category, files, entries)

        if changed:
            self.flush()
        return changed

    def count_files_on_disk(self, category: str) -> int:
        return sum(
            len(self.prober.list_files(category, record))
            for record in self.prober.list_records(category)
        )

    def count_entries_in_index(self, category: str) -> int:
        return sum(
            MetadataIndex(self.prober, category, record).count_entries()
            for record in self.prober.list_records(category)
        )
