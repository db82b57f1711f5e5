# MIT License
# Copyright (c) 2025 Hashborn

"""
Part writers for chunked genesis exports.

A GenesisFileWriter owns exactly one open part file. On rollover the
session closes it and opens a fresh writer for the next part; writers are
never reused.
"""

import logging
from pathlib import Path
from typing import List, Optional

from .codec import write_header, write_frame, patch_count
from .types import PartInfo
from ...protocol.config.params import chunk_file_name
from ...protocol.crypto.hash import sha256_file

logger = logging.getLogger(__name__)


class GenesisFileWriter:
    """Writes the header and account records of a single part file."""

    def __init__(self, path: Path, index: int, params_payload: bytes):
        self.path = Path(path)
        self.index = index
        self.count = 0
        self._f = open(self.path, "wb")
        try:
            self.count_offset = write_header(self._f, params_payload)
        except BaseException:
            self._f.close()
            raise
        self.size = self._f.tell()

    @property
    def closed(self) -> bool:
        return self._f.closed

    def write_record(self, payload: bytes) -> int:
        n = write_frame(self._f, payload)
        self.size += n
        self.count += 1
        return n

    def close(self):
        if not self._f.closed:
            self._f.close()

    def part_info(self) -> PartInfo:
        return PartInfo(
            index=self.index,
            file_name=self.path.name,
            count=self.count,
            size=self.size,
            count_offset=self.count_offset
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class ChunkedExportSession:
    """
    Streams account records across one or more part files.

    Part 0 is created immediately. Once a part grows past the rollover
    threshold it is closed; the next record opens the following part with
    its own header. Header counts are only patched by finalize().
    """

    def __init__(self, export_dir: Path, params_payload: bytes, rollover_threshold: int):
        self.export_dir = Path(export_dir)
        self.params_payload = params_payload
        self.rollover_threshold = rollover_threshold
        self.parts: List[PartInfo] = []
        self.total_count = 0
        self.bytes_written = 0
        self._next_index = 0
        self._writer: Optional[GenesisFileWriter] = None
        self._open_next()

    def _open_next(self):
        index = self._next_index
        self._writer = GenesisFileWriter(
            self.export_dir / chunk_file_name(index), index, self.params_payload
        )
        self._next_index += 1
        self.bytes_written += self._writer.size
        logger.debug(f"Opened genesis part {self._writer.path}")

    def _close_current(self):
        if self._writer is None:
            return
        self._writer.close()
        self.parts.append(self._writer.part_info())
        self._writer = None

    def append(self, payload: bytes):
        if self._writer is None:
            self._open_next()

        self.bytes_written += self._writer.write_record(payload)
        self.total_count += 1

        if self._writer.size > self.rollover_threshold:
            logger.debug(
                f"Rolling over {self._writer.path.name} at {self._writer.size} bytes "
                f"({self._writer.count} records)"
            )
            self._close_current()

    def close(self):
        """Closes the open part, if any. Safe to call more than once."""
        self._close_current()

    def finalize(self) -> List[PartInfo]:
        """Closes the open part and patches every part's header count."""
        self.close()
        for part in self.parts:
            path = self.export_dir / part.file_name
            patch_count(str(path), part.count_offset, part.count)
            part.sha256 = sha256_file(path)
        return self.parts
