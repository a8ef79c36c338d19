"""Local document filing: category -> record -> files, with a lazily reconciled index.

Layout (under the store root):
    .data/
        <category>/
            <record>/
                <files...>
                <record>data.txt    # metadata index: index|fileName|timestamp
    manifest.txt                    # one line per category: name|true / name|false

The tree on disk is the source of truth. Each record's metadata index is a
derived table kept current by a fast append on upload and a full sync that
runs only for categories the manifest registry has flagged dirty.
"""

from cabinet.config import CabinetConfig, init_config, load_config
from cabinet.index import MetadataIndex
from cabinet.manifest import ManifestRegistry
from cabinet.models import MetadataEntry
from cabinet.prober import DirectoryProber
from cabinet.reconcile import Reconciler
from cabinet.store import Cabinet

__all__ = [
    "Cabinet",
    "CabinetConfig",
    "DirectoryProber",
    "ManifestRegistry",
    "MetadataEntry",
    "MetadataIndex",
    "Reconciler",
    "init_config",
    "load_config",
]
