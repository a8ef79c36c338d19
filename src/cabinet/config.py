"""CabinetConfig: location and format settings for a filing store.

Default layout (all relative to the store root):

    cabinet.toml          # optional config
    manifest.txt          # per-category dirty flags
    .data/
        <category>/
            <record>/
                <files...>
                <record>data.txt    # metadata index
    .log/
        .log.txt          # audit trail

cabinet.toml example:

    [cabinet]
    # data_dir = ".data"              # default
    # manifest = "manifest.txt"       # default
    # log_dir = ".log"                # default
    # index_suffix = "data.txt"       # default
    # timestamp_format = "%d-%m-%Y %I:%M %p"

    [audit]
    enabled = true
    # user = "registrar"    # default: OS user
"""

from __future__ import annotations

import getpass
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cabinet.models import DEFAULT_TIMESTAMP_FORMAT

_CONFIG_FILENAME = "cabinet.toml"
_HOME_ENV = "CABINET_HOME"
_DEFAULT_HOME = "~/.cabinet"
_DEFAULT_DATA_DIR = ".data"
_DEFAULT_MANIFEST = "manifest.txt"
_DEFAULT_LOG_DIR = ".log"
_DEFAULT_INDEX_SUFFIX = "data.txt"
_AUDIT_FILENAME = ".log.txt"


@dataclass
class AuditConfig:
    enabled: bool = True
    user: str = ""     # empty = OS user

    @property
    def resolved_user(self) -> str:
        if self.user:
            return self.user
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            return "unknown"


@dataclass
class CabinetConfig:
    """Resolved configuration for one filing store."""

    root: Path
    data_dir: Path = field(default_factory=Path)
    manifest_path: Path = field(default_factory=Path)
    log_dir: Path = field(default_factory=Path)
    index_suffix: str = _DEFAULT_INDEX_SUFFIX
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    audit: AuditConfig = field(default_factory=AuditConfig)

    @classmethod
    def for_root(cls, root: Path | str) -> CabinetConfig:
        """Defaults for a store rooted at root, ignoring any cabinet.toml."""
        root_path = Path(root)
        return cls(
            root=root_path,
            data_dir=root_path / _DEFAULT_DATA_DIR,
            manifest_path=root_path / _DEFAULT_MANIFEST,
            log_dir=root_path / _DEFAULT_LOG_DIR,
        )

    @property
    def audit_path(self) -> Path:
        return self.log_dir / _AUDIT_FILENAME

    def ensure_dirs(self) -> None:
        """Create data_dir and log_dir if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)


def load_config(root: Path | str | None = None) -> CabinetConfig:
    """Load cabinet.toml for a store.

    Root resolution: explicit argument, then $CABINET_HOME, then the first
    directory upward from cwd holding cabinet.toml, then ~/.cabinet.
    """
    root_path = _resolve_root(root)
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    section = raw.get("cabinet", {})
    audit_section = raw.get("audit", {})

    return CabinetConfig(
        root=root_path,
        data_dir=root_path / section.get("data_dir", _DEFAULT_DATA_DIR),
        manifest_path=root_path / section.get("manifest", _DEFAULT_MANIFEST),
        log_dir=root_path / section.get("log_dir", _DEFAULT_LOG_DIR),
        index_suffix=str(section.get("index_suffix", _DEFAULT_INDEX_SUFFIX)),
        timestamp_format=str(section.get("timestamp_format", DEFAULT_TIMESTAMP_FORMAT)),
        audit=AuditConfig(
            enabled=bool(audit_section.get("enabled", True)),
            user=str(audit_section.get("user", "")),
        ),
    )


def _resolve_root(root: Path | str | None) -> Path:
    if root:
        return Path(root).expanduser().resolve()
    env_home = os.environ.get(_HOME_ENV)
    if env_home:
        return Path(env_home).expanduser().resolve()
    found = _find_root(Path.cwd())
    if found is not None:
        return found
    return Path(_DEFAULT_HOME).expanduser()


def _find_root(start: Path) -> Path | None:
    """Walk upward from start looking for cabinet.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return None


def init_config(root: Path) -> Path:
    """Write a default cabinet.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"cabinet.toml already exists at {config_path}"
        raise FileExistsError(msg)

    root.mkdir(parents=True, exist_ok=True)
    content = """\
[cabinet]
# data_dir = ".data"              # category/record/file tree
# manifest = "manifest.txt"       # per-category dirty flags
# log_dir = ".log"                # audit trail lives in <log_dir>/.log.txt
# index_suffix = "data.txt"       # metadata index is <record><index_suffix>
# timestamp_format = "%d-%m-%Y %I:%M %p"

[audit]
enabled = true
# user = ""     # name recorded in the audit trail (default: OS user)
"""
    config_path.write_text(content)
    return config_path
