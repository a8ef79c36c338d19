"""Reconciler: the entry point run before any listing of the tree.

    reconciler = Reconciler.from_config(cfg)
    reconciler.ensure_consistent()       # full sync of dirty categories only
    reconciler.index("Grade7", "JuanDelaCruz").append_entry("report.pdf")
    reconciler.registry.mark_changed("Grade7")

Mutations elsewhere only touch the fast paths and flip dirty flags; this is
the only place a full sync runs.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from cabinet.index import MetadataIndex
from cabinet.manifest import ManifestRegistry
from cabinet.models import DEFAULT_TIMESTAMP_FORMAT
from cabinet.prober import DirectoryProber

if TYPE_CHECKING:
    from collections.abc import Callable

    from cabinet.config import CabinetConfig

logger = logging.getLogger("cabinet.reconcile")


class Reconciler:
    """Owns the prober and the manifest registry for one store."""

    def __init__(
        self,
        prober: DirectoryProber,
        registry: ManifestRegistry,
        *,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.prober = prober
        self.registry = registry
        self.timestamp_format = timestamp_format
        self.clock = clock

    @classmethod
    def from_config(cls, cfg: CabinetConfig, clock: Callable[[], datetime] = datetime.now) -> Reconciler:
        prober = DirectoryProber(cfg.data_dir, cfg.index_suffix)
        registry = ManifestRegistry(cfg.manifest_path, prober)
        return cls(prober, registry, timestamp_format=cfg.timestamp_format, clock=clock)

    def index(self, category: str, record: str) -> MetadataIndex:
        return MetadataIndex(
            self.prober,
            category,
            record,
            timestamp_format=self.timestamp_format,
            clock=self.clock,
        )

    # ------------------------------------------------------------------
    # Collaborator API
    # ------------------------------------------------------------------

    def append_entry(self, category: str, record: str, file_name: str) -> None:
        self.index(category, record).append_entry(file_name)

    def remove_entry(self, category: str, record: str, file_name: str) -> None:
        self.index(category, record).remove_entry(file_name)

    def mark_changed(self, category: str) -> None:
        self.registry.mark_changed(category)

    def mark_scanned(self, category: str) -> None:
        self.registry.mark_scanned(category)

    def folders_needing_sync(self) -> list[str]:
        return self.registry.folders_needing_sync()

    def rename_category(self, old: str, new: str) -> None:
        self.registry.rename_category(old, new)

    def remove_category(self, category: str) -> None:
        self.registry.remove_category(category)

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def sync_category(self, category: str) -> tuple[int, int]:
        """Full-sync every record of category. Returns (records, rewritten)."""
        records = self.prober.list_records(category)
        rewritten = sum(1 for record in records if self.index(category, record).full_sync())
        return len(records), rewritten

    def ensure_consistent(self) -> dict[str, int]:
        """Full-sync every dirty category, then mark it clean.

        A write failure propagates and leaves the category dirty, so the
        next call retries it. Returns stats: categories, records, rewritten.
        """
        stats = {"categories": 0, "records": 0, "rewritten": 0}
        for category in self.registry.folders_needing_sync():
            records, rewritten = self.sync_category(category)
            stats["records"] += records
            stats["rewritten"] += rewritten
            self.registry.mark_scanned(category)
            stats["categories"] += 1
        if stats["categories"]:
            logger.info(
                "synced %d categories (%d records, %d rewritten)",
                stats["categories"], stats["records"], stats["rewritten"],
            )
        return stats
