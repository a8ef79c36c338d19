"""Cabinet: filing operations on the category/record/file tree.

    cab = Cabinet.open("/path/to/store")
    cab.upload("~/scans/report.pdf", "Grade7", "JuanDelaCruz")
    cab.rename_record("Grade7", "JuanDelaCruz", "Juan Dela Cruz")
    for entry in cab.entries("Grade7", "Juan Dela Cruz"):
        ...

Each mutation changes the tree, applies the matching fast-path index update,
flags the affected categories dirty and writes one audit line. Listings call
ensure_consistent() first, which repairs anything the fast paths missed.
"""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from cabinet.audit import AuditLog
from cabinet.config import CabinetConfig, load_config
from cabinet.errors import AlreadyExistsError, NotFoundError
from cabinet.prober import validate_name
from cabinet.reconcile import Reconciler

if TYPE_CHECKING:
    from collections.abc import Callable

    from cabinet.models import MetadataEntry


class Cabinet:
    """A filing store rooted at a CabinetConfig."""

    def __init__(self, cfg: CabinetConfig, clock: Callable[[], datetime] = datetime.now) -> None:
        self.cfg = cfg
        cfg.ensure_dirs()
        self.reconciler = Reconciler.from_config(cfg, clock=clock)
        self.prober = self.reconciler.prober
        self.registry = self.reconciler.registry
        self.audit = AuditLog(
            cfg.audit_path if cfg.audit.enabled else None,
            cfg.audit.resolved_user,
        )

    @classmethod
    def open(cls, root: Path | str | None = None) -> Cabinet:
        return cls(load_config(root))

    def close(self) -> None:
        self.audit.close()

    def __enter__(self) -> Cabinet:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @staticmethod
    def _check(category: str, record: str | None = None, file_name: str | None = None) -> None:
        validate_name(category, "category")
        if record is not None:
            validate_name(record, "record")
        if file_name is not None:
            validate_name(file_name, "file name")

    # ------------------------------------------------------------------
    # Listing (always reconciled first)
    # ------------------------------------------------------------------

    def categories(self) -> list[str]:
        self.reconciler.ensure_consistent()
        return sorted(self.prober.list_categories())

    def records(self, category: str) -> list[str]:
        self.reconciler.ensure_consistent()
        return self.prober.list_records(category)

    def entries(self, category: str, record: str) -> list[MetadataEntry]:
        self.reconciler.ensure_consistent()
        return self.reconciler.index(category, record).read_entries()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_category(self, category: str) -> Path:
        validate_name(category, "category")
        path = self.prober.category_dir(category)
        if path.exists():
            msg = f"Category already exists: {category}"
            raise AlreadyExistsError(msg)
        path.mkdir(parents=True)
        self.registry.mark_changed(category)
        self.audit.record("CREATE-CATEGORY", category=category)
        return path

    def create_record(self, category: str, record: str) -> Path:
        validate_name(category, "category")
        validate_name(record, "record")
        path = self.prober.record_dir(category, record)
        if path.exists():
            msg = f"Record already exists: {category}/{record}"
            raise AlreadyExistsError(msg)
        path.mkdir(parents=True)
        self.registry.mark_changed(category)
        self.audit.record("CREATE-SUBFOLDER", category=category, subfolder=record)
        return path

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def upload(
        self,
        source: Path | str,
        category: str,
        record: str,
        name: str | None = None,
        *,
        keep_source: bool = False,
    ) -> Path:
        """Copy source into category/record, then drop the original.

        name replaces the file's stem; the extension is kept. The copy is
        verified by size before the source is removed.
        """
        src = Path(source).expanduser()
        if not src.is_file():
            msg = f"No such file: {src}"
            raise NotFoundError(msg)
        validate_name(category, "category")
        validate_name(record, "record")
        file_name = validate_name(f"{name}{src.suffix}" if name else src.name, "file name")
        if self.prober.is_reserved(record, file_name):
            msg = f"File name collides with the record index: {file_name}"
            raise AlreadyExistsError(msg)

        dest_dir = self.prober.record_dir(category, record)
        dest = dest_dir / file_name
        if dest.exists():
            msg = f"A file named {file_name!r} already exists in {category}/{record}"
            raise AlreadyExistsError(msg)
        dest_dir.mkdir(parents=True, exist_ok=True)

        shutil.copy2(src, dest)
        if dest.stat().st_size != src.stat().st_size:
            dest.unlink(missing_ok=True)
            msg = f"Copy verification failed for {src}"
            raise OSError(msg)
        if not keep_source:
            src.unlink()

        self.reconciler.append_entry(category, record, file_name)
        self.registry.mark_changed(category)
        self.audit.record("UPLOAD", category=category, subfolder=record, file=file_name)
        return dest

    def rename_file(self, category: str, record: str, old: str, new: str) -> Path:
        self._check(category, record, old)
        validate_name(new, "file name")
        directory = self.prober.record_dir(category, record)
        src, dst = directory / old, directory / new
        if not src.is_file():
            msg = f"File not found: {category}/{record}/{old}"
            raise NotFoundError(msg)
        if dst.exists() or self.prober.is_reserved(record, new):
            msg = f"A file named {new!r} already exists in {category}/{record}"
            raise AlreadyExistsError(msg)
        src.rename(dst)

        index = self.reconciler.index(category, record)
        index.remove_entry(old)
        index.append_entry(new)
        self.registry.mark_changed(category)
        self.audit.record("RENAME-FILE", category=category, subfolder=record, old=old, new=new)
        return dst

    def move_file(self, category: str, record: str, file_name: str, dest_category: str, dest_record: str) -> Path:
        self._check(category, record, file_name)
        validate_name(dest_category, "category")
        validate_name(dest_record, "record")
        src = self.prober.record_dir(category, record) / file_name
        if not src.is_file():
            msg = f"File not found: {category}/{record}/{file_name}"
            raise NotFoundError(msg)
        if (category, record) == (dest_category, dest_record):
            return src
        dest_dir = self.prober.record_dir(dest_category, dest_record)
        dst = dest_dir / file_name
        if dst.exists() or self.prober.is_reserved(dest_record, file_name):
            msg = f"A file named {file_name!r} already exists in {dest_category}/{dest_record}"
            raise AlreadyExistsError(msg)
        dest_dir.mkdir(parents=True, exist_ok=True)
        shutil.move(src, dst)

        self.reconciler.remove_entry(category, record, file_name)
        self.reconciler.append_entry(dest_category, dest_record, file_name)
        self.registry.mark_changed(category)
        self.registry.mark_changed(dest_category)
        self.audit.record(
            "MOVE-FILE",
            **{"from": f"{category}/{record}", "to": f"{dest_category}/{dest_record}", "file": file_name},
        )
        return dst

    def delete_file(self, category: str, record: str, file_name: str) -> None:
        self._check(category, record, file_name)
        path = self.prober.record_dir(category, record) / file_name
        if not path.is_file() or self.prober.is_reserved(record, file_name):
            msg = f"File not found: {category}/{record}/{file_name}"
            raise NotFoundError(msg)
        path.unlink()
        self.reconciler.remove_entry(category, record, file_name)
        self.registry.mark_changed(category)
        self.audit.record("DELETE-FILE", category=category, subfolder=record, file=file_name)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def rename_record(self, category: str, old: str, new: str) -> Path:
        self._check(category, old)
        validate_name(new, "record")
        dst = self._relocate_record(category, old, category, new)
        self.registry.mark_changed(category)
        self.audit.record("RENAME-SUBFOLDER", category=category, old=old, new=new)
        return dst

    def move_record(self, category: str, record: str, dest_category: str) -> Path:
        self._check(category, record)
        validate_name(dest_category, "category")
        if dest_category == category:
            return self.prober.record_dir(category, record)
        dst = self._relocate_record(category, record, dest_category, record)
        self.registry.mark_changed(category)
        self.registry.mark_changed(dest_category)
        self.audit.record("MOVE-SUBFOLDER", subfolder=record, **{"from": category, "to": dest_category})
        return dst

    def delete_record(self, category: str, record: str) -> None:
        self._check(category, record)
        path = self.prober.record_dir(category, record)
        if not path.is_dir():
            msg = f"Record not found: {category}/{record}"
            raise NotFoundError(msg)
        shutil.rmtree(path)
        self.registry.mark_changed(category)
        self.audit.record("DELETE-SUBFOLDER", category=category, subfolder=record)

    def _relocate_record(self, category: str, record: str, dest_category: str, dest_record: str) -> Path:
        """Rename a record directory, carrying its index along under the new name."""
        src = self.prober.record_dir(category, record)
        dst = self.prober.record_dir(dest_category, dest_record)
        if not src.is_dir():
            msg = f"Record not found: {category}/{record}"
            raise NotFoundError(msg)
        if dst.exists():
            msg = f"Record already exists: {dest_category}/{dest_record}"
            raise AlreadyExistsError(msg)
        if record != dest_record:
            clash = sorted(
                name for name in self.prober.list_files(category, record)
                if self.prober.is_reserved(dest_record, name)
            )
            if clash:
                msg = f"{category}/{record} holds {clash[0]!r}, which would become the index of {dest_record!r}"
                raise AlreadyExistsError(msg)
        dst.parent.mkdir(parents=True, exist_ok=True)
        src.rename(dst)
        if record != dest_record:
            old_index = dst / self.prober.index_name(record)
            if old_index.exists():
                old_index.rename(self.prober.index_path(dest_category, dest_record))
        return dst

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def rename_category(self, old: str, new: str) -> Path:
        self._check(old)
        validate_name(new, "category")
        src = self.prober.category_dir(old)
        dst = self.prober.category_dir(new)
        if not src.is_dir():
            msg = f"Category not found: {old}"
            raise NotFoundError(msg)
        if dst.exists():
            msg = f"Category already exists: {new}"
            raise AlreadyExistsError(msg)
        src.rename(dst)
        self.reconciler.rename_category(old, new)
        self.audit.record("RENAME-CATEGORY", old=old, new=new)
        return dst

    def delete_category(self, category: str) -> None:
        self._check(category)
        path = self.prober.category_dir(category)
        if not path.is_dir():
            msg = f"Category not found: {category}"
            raise NotFoundError(msg)
        shutil.rmtree(path)
        self.reconciler.remove_category(category)
        self.audit.record("DELETE-CATEGORY", category=category)
