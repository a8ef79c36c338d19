"""Shared fixtures: a throwaway store root with a fixed clock."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import pytest

from cabinet.config import CabinetConfig
from cabinet.prober import DirectoryProber
from cabinet.reconcile import Reconciler
from cabinet.store import Cabinet

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

FIXED_NOW = datetime(2026, 10, 19, 16, 45)
FIXED_TS = "19-10-2026 04:45 PM"


def fixed_clock() -> datetime:
    return FIXED_NOW


def put(cfg: CabinetConfig, category: str, record: str, *names: str) -> Path:
    """Create files straight on disk, bypassing the index."""
    directory = cfg.data_dir / category / record
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / name).write_text(f"contents of {name}")
    return directory


@pytest.fixture
def cfg(tmp_path: Path) -> CabinetConfig:
    config = CabinetConfig.for_root(tmp_path / "store")
    config.audit.user = "tester"
    config.ensure_dirs()
    return config


@pytest.fixture
def prober(cfg: CabinetConfig) -> DirectoryProber:
    return DirectoryProber(cfg.data_dir, cfg.index_suffix)


@pytest.fixture
def reconciler(cfg: CabinetConfig) -> Reconciler:
    return Reconciler.from_config(cfg, clock=fixed_clock)


@pytest.fixture
def cabinet(cfg: CabinetConfig) -> Iterator[Cabinet]:
    cab = Cabinet(cfg, clock=fixed_clock)
    yield cab
    cab.close()
