# MIT License
# Copyright (c) 2025 Hashborn

"""
Genesis Framing Codec

Record framing:
    [u32 LE length][payload]

Chunked file layout:
    [u32 LE length][EVMParams payload]
    [u64 LE record count]            -- 0 until the export is finalized
    repeated:
      [u32 LE length][GenesisAccount payload]

Payloads are opaque to the framing layer; record helpers below encode
them as compact pydantic JSON.
"""

import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ...protocol.types.common import GenesisEncodingError, GenesisIntegrityError

LENGTH_PREFIX = struct.Struct("<I")
COUNT_FIELD = struct.Struct("<Q")

MAX_PAYLOAD_SIZE = 0xFFFFFFFF

M = TypeVar("M", bound=BaseModel)


@dataclass
class FileHeader:
    params_payload: bytes
    count: int
    count_offset: int   # Byte offset of the u64 count field
    data_offset: int    # Byte offset of the first account record


def _name(f: BinaryIO, path: Optional[str]) -> Optional[str]:
    if path is not None:
        return str(path)
    return getattr(f, "name", None)


def encode_frame(payload: bytes) -> bytes:
    """Length-prefixes a payload. Output is always 4 + len(payload) bytes."""
    if len(payload) > MAX_PAYLOAD_SIZE:
        raise GenesisEncodingError(f"Payload too large for framing: {len(payload)} bytes")
    return LENGTH_PREFIX.pack(len(payload)) + payload


def write_frame(f: BinaryIO, payload: bytes) -> int:
    """Writes one framed record, returns the number of bytes written."""
    frame = encode_frame(payload)
    f.write(frame)
    return len(frame)


def read_exact(f: BinaryIO, n: int, path: Optional[str] = None) -> bytes:
    """
    Reads exactly n bytes, looping over partial reads.

    Raises:
        GenesisIntegrityError: EOF reached before n bytes were read
    """
    start = f.tell()
    chunks = []
    remaining = n
    while remaining > 0:
        chunk = f.read(remaining)
        if not chunk:
            raise GenesisIntegrityError(
                f"Short read: expected {n} bytes, got {n - remaining}",
                path=_name(f, path),
                offset=start
            )
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def read_frame(f: BinaryIO, path: Optional[str] = None) -> bytes:
    """Reads one framed record and returns its payload."""
    (length,) = LENGTH_PREFIX.unpack(read_exact(f, LENGTH_PREFIX.size, path))
    return read_exact(f, length, path)


def at_eof(f: BinaryIO) -> bool:
    pos = f.tell()
    if f.read(1):
        f.seek(pos)
        return False
    return True


def write_header(f: BinaryIO, params_payload: bytes) -> int:
    """
    Writes the params record and a zero count placeholder.

    Returns:
        Byte offset of the count field (relative to where the header starts)
    """
    start = f.tell()
    written = write_frame(f, params_payload)
    f.write(COUNT_FIELD.pack(0))
    return start + written


def read_header(f: BinaryIO, path: Optional[str] = None) -> FileHeader:
    params_payload = read_frame(f, path)
    count_offset = f.tell()
    (count,) = COUNT_FIELD.unpack(read_exact(f, COUNT_FIELD.size, path))
    return FileHeader(
        params_payload=params_payload,
        count=count,
        count_offset=count_offset,
        data_offset=f.tell()
    )


def patch_count(path: str, offset: int, count: int):
    """Overwrites the count field of an already closed file."""
    with open(path, "r+b") as f:
        f.seek(offset)
        f.write(COUNT_FIELD.pack(count))
        f.flush()
        os.fsync(f.fileno())


def encode_record(record: BaseModel) -> bytes:
    return record.model_dump_json().encode()


def decode_record(model: Type[M], payload: bytes, path: Optional[str] = None, offset: Optional[int] = None) -> M:
    try:
        return model.model_validate_json(payload)
    except ValidationError as e:
        raise GenesisEncodingError(
            f"Malformed {model.__name__} record: {e.error_count()} error(s): {e.errors()[0]['msg']}",
            path=path,
            offset=offset
        ) from e
