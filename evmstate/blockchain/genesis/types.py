# MIT License
# Copyright (c) 2025 Hashborn

"""
Genesis Export/Import Result Structures
"""

from pydantic import BaseModel, Field
from typing import List, Optional

from ...protocol.types.common import ExportStatus, FileFormat


class PartInfo(BaseModel):
    """One file of a chunked export."""
    index: int = Field(..., description="Numeric suffix of the part file")
    file_name: str = Field(..., description="File name relative to the export directory")
    count: int = Field(default=0, description="Account records in this part")
    size: int = Field(default=0, description="Bytes written to this part")
    count_offset: int = Field(default=0, description="Byte offset of the header count field")
    sha256: Optional[str] = Field(default=None, description="SHA256 of the finalized file")


class GenesisManifest(BaseModel):
    """
    Written next to the parts only after every part header is patched.
    """
    version: str = Field(default="1.0.0", description="Manifest format version")
    module: str = Field(..., description="Module the parts belong to")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    total_count: int = Field(..., description="Account records across all parts")
    parts: List[PartInfo] = Field(default_factory=list)


class ExportResult(BaseModel):
    status: ExportStatus = ExportStatus.OK
    file_format: FileFormat = FileFormat.CHUNKED
    export_dir: str
    accounts_exported: int = 0
    bytes_written: int = 0
    parts: List[PartInfo] = Field(default_factory=list)
    feemarket_file: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ExportStatus.OK


class ImportResult(BaseModel):
    status: ExportStatus = ExportStatus.OK
    source: str
    accounts_imported: int = 0
    storage_slots_written: int = 0
    skipped: List[str] = Field(default_factory=list, description="Addresses skipped by policy")
    feemarket_imported: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ExportStatus.OK
