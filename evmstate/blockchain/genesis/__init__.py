# MIT License
# Copyright (c) 2025 Hashborn

"""
Genesis State Export/Import

Chunked (length-prefixed part files) and whole-buffer (single JSON
document) serialization of EVM params, contract code and storage.
"""

from .context import ExecutionContext
from .exporter import GenesisExporter
from .importer import GenesisImporter
from .feemarket import FeeMarketGenesis
from .service import export_genesis_files, import_genesis_files
from .types import ExportResult, ImportResult, GenesisManifest, PartInfo

__all__ = [
    "ExecutionContext",
    "GenesisExporter",
    "GenesisImporter",
    "FeeMarketGenesis",
    "export_genesis_files",
    "import_genesis_files",
    "ExportResult",
    "ImportResult",
    "GenesisManifest",
    "PartInfo",
]
