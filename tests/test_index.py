"""Tests for MetadataIndex: fast append, remove, and full sync."""

from __future__ import annotations

import string
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from cabinet.config import CabinetConfig
from cabinet.errors import IndexWriteError
from cabinet.index import MetadataIndex
from cabinet.models import MetadataEntry
from cabinet.prober import DirectoryProber
from tests.conftest import FIXED_TS, fixed_clock, put


def _index(prober: DirectoryProber, category: str = "Grade7", record: str = "Juan") -> MetadataIndex:
    return MetadataIndex(prober, category, record, clock=fixed_clock)


def _indices(index: MetadataIndex) -> list[int]:
    return [e.index for e in index.read_entries()]


# ---------------------------------------------------------------------------
# append_entry
# ---------------------------------------------------------------------------


def test_append_on_empty_index(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "report.pdf")
    index = _index(prober)

    entry = index.append_entry("report.pdf")

    assert entry == MetadataEntry(0, "report.pdf", FIXED_TS)
    assert index.path.read_text() == f"0|report.pdf|{FIXED_TS}\n"


def test_append_numbers_after_existing_lines(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan")
    index = _index(prober)
    index.path.write_text("0|a.pdf|ts\n1|b.pdf|ts\n")

    index.append_entry("c.pdf")

    assert index.path.read_text().splitlines()[-1] == f"2|c.pdf|{FIXED_TS}"


def test_append_does_not_list_directory(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "a.pdf", "b.pdf", "c.pdf")
    index = _index(prober)

    index.append_entry("a.pdf")

    # Unindexed b.pdf and c.pdf are left for the next full sync.
    assert [e.file_name for e in index.read_entries()] == ["a.pdf"]


def test_append_after_unterminated_last_line(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan")
    index = _index(prober)
    index.path.write_text("0|a.pdf|ts")

    index.append_entry("b.pdf")

    assert index.path.read_text() == f"0|a.pdf|ts\n1|b.pdf|{FIXED_TS}\n"
    assert [e.file_name for e in index.read_entries()] == ["a.pdf", "b.pdf"]


def test_append_creates_record_dir(prober: DirectoryProber) -> None:
    index = _index(prober, "Grade9", "New")
    index.append_entry("x.pdf")
    assert index.path.exists()


def test_append_write_failure_raises(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "a.pdf")
    index = _index(prober)
    index.path.mkdir()

    with pytest.raises(IndexWriteError):
        index.append_entry("a.pdf")


# ---------------------------------------------------------------------------
# remove_entry
# ---------------------------------------------------------------------------


def test_append_then_remove_leaves_empty_file(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "a.pdf")
    index = _index(prober)

    index.append_entry("a.pdf")
    assert index.remove_entry("a.pdf") is True

    assert index.path.exists()
    assert index.path.read_text() == ""
    assert index.count_entries() == 0


def test_remove_renumbers_and_keeps_order(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan")
    index = _index(prober)
    index.path.write_text("0|a.pdf|t0\n1|b.pdf|t1\n2|c.pdf|t2\n3|d.pdf|t3\n")

    index.remove_entry("b.pdf")

    assert index.path.read_text() == "0|a.pdf|t0\n1|c.pdf|t2\n2|d.pdf|t3\n"


def test_remove_first_occurrence_only(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan")
    index = _index(prober)
    index.path.write_text("0|a.pdf|t0\n1|b.pdf|t1\n2|a.pdf|t2\n")

    index.remove_entry("a.pdf")

    assert index.path.read_text() == "0|b.pdf|t1\n1|a.pdf|t2\n"


def test_remove_unknown_name_renumbers(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan")
    index = _index(prober)
    index.path.write_text("0|a.pdf|t0\n5|b.pdf|t1\nbroken\n")

    assert index.remove_entry("zzz.pdf") is False
    assert index.path.read_text() == "0|a.pdf|t0\n1|b.pdf|t1\n"


def test_remove_without_index_is_noop(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "a.pdf")
    index = _index(prober)

    assert index.remove_entry("a.pdf") is False
    assert not index.path.exists()


# ---------------------------------------------------------------------------
# full_sync
# ---------------------------------------------------------------------------


def test_full_sync_prunes_and_adopts(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "keep.pdf", "new.png")
    index = _index(prober)
    index.path.write_text("0|gone.pdf|old0\n1|keep.pdf|old1\n")

    assert index.full_sync() is True

    assert index.path.read_text() == f"0|keep.pdf|old1\n1|new.png|{FIXED_TS}\n"


def test_full_sync_is_idempotent(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "a.pdf", "b.pdf")
    ticks = iter(datetime(2026, 1, 1) + timedelta(days=n) for n in range(10))
    index = MetadataIndex(prober, "Grade7", "Juan", clock=lambda: next(ticks))

    assert index.full_sync() is True
    first = index.path.read_bytes()
    mtime = index.path.stat().st_mtime_ns

    assert index.full_sync() is False
    assert index.path.read_bytes() == first
    assert index.path.stat().st_mtime_ns == mtime


def test_full_sync_matching_index_untouched(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "a.pdf")
    index = _index(prober)
    index.path.write_text("0|a.pdf|01-01-2020 10:00 AM\n")

    assert index.full_sync() is False
    assert index.path.read_text() == "0|a.pdf|01-01-2020 10:00 AM\n"


def test_full_sync_repairs_numbering_without_prune_or_adopt(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "a.pdf", "b.pdf")
    index = _index(prober)
    index.path.write_text("0|a.pdf|t0\n5|b.pdf|t1")

    assert index.full_sync() is True
    assert index.path.read_text() == "0|a.pdf|t0\n1|b.pdf|t1\n"


def test_full_sync_drops_malformed_and_duplicate_lines(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "a.pdf", "b.pdf")
    index = _index(prober)
    index.path.write_text("0|a.pdf|t0\ngarbage\n1|a.pdf|t1\n7|b.pdf|t2\n")

    assert index.full_sync() is True
    assert index.path.read_text() == "0|a.pdf|t0\n1|b.pdf|t2\n"


def test_full_sync_fills_missing_timestamp(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "a.pdf")
    index = _index(prober)
    index.path.write_text("0|a.pdf\n")

    assert index.full_sync() is True
    assert index.path.read_text() == f"0|a.pdf|{FIXED_TS}\n"


def test_full_sync_empty_record_writes_nothing(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan")
    index = _index(prober)

    assert index.full_sync() is False
    assert not index.path.exists()


def test_full_sync_all_files_deleted_empties_index(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan")
    index = _index(prober)
    index.path.write_text("0|a.pdf|t0\n1|b.pdf|t1\n")

    assert index.full_sync() is True
    assert index.path.read_text() == ""


def test_full_sync_missing_record_is_noop(prober: DirectoryProber) -> None:
    index = _index(prober, "Grade7", "Ghost")
    assert index.full_sync() is False
    assert not index.path.parent.exists()


def test_full_sync_unreadable_index_treated_as_empty(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan", "a.pdf")
    index = _index(prober)
    index.path.mkdir()

    assert index.read_entries() == []
    with pytest.raises(IndexWriteError):
        index.full_sync()


def test_full_sync_leaves_no_temp_file(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    directory = put(cfg, "Grade7", "Juan", "a.pdf")
    index = _index(prober)
    index.full_sync()

    assert sorted(p.name for p in directory.iterdir()) == ["Juandata.txt", "a.pdf"]


def test_count_entries_counts_lines(cfg: CabinetConfig, prober: DirectoryProber) -> None:
    put(cfg, "Grade7", "Juan")
    index = _index(prober)
    assert index.count_entries() == 0
    index.path.write_text("0|a|t\nbroken\n2|c|t\n")
    assert index.count_entries() == 3


# ---------------------------------------------------------------------------
# Contiguity property
# ---------------------------------------------------------------------------

_NAME = st.text(alphabet=string.ascii_lowercase, min_size=1, max_size=6).map(lambda s: s + ".pdf")


@settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(
    indexed=st.lists(_NAME, unique=True, max_size=8),
    on_disk=st.lists(_NAME, unique=True, max_size=8),
    removals=st.lists(_NAME, max_size=4),
)
def test_indices_stay_contiguous(indexed: list[str], on_disk: list[str], removals: list[str]) -> None:
    with tempfile.TemporaryDirectory() as tmp:
        cfg = CabinetConfig.for_root(Path(tmp))
        put(cfg, "C", "R", *on_disk)
        index = MetadataIndex(DirectoryProber(cfg.data_dir), "C", "R", clock=fixed_clock)
        for name in indexed:
            index.append_entry(name)

        for name in removals:
            before = [e.file_name for e in index.read_entries()]
            index.remove_entry(name)
            after = [e.file_name for e in index.read_entries()]
            if name in before:
                before.remove(name)
            assert after == before
            assert _indices(index) == list(range(len(after)))

        survivors = [e.file_name for e in index.read_entries() if e.file_name in on_disk]
        index.full_sync()
        names = [e.file_name for e in index.read_entries()]

        assert _indices(index) == list(range(len(names)))
        assert sorted(names) == sorted(on_disk)
        assert names[: len(survivors)] == survivors
