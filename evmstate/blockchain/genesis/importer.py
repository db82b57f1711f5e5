# MIT License
# Copyright (c) 2025 Hashborn

"""
Genesis Importer

Loads genesis files written by GenesisExporter and replays them into the
EVM store. Accounts must already exist in the registry; import only fills
in their code and storage.
"""

import io
import logging
import os
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple, Union

from .codec import read_header, read_frame, at_eof, decode_record
from .replay import compute_code_hash, hashes_equal, replay_account
from .types import ImportResult, GenesisManifest, PartInfo
from ..core.evm_store import EVMStore
from ..core.registry import AccountRegistry
from ...protocol.types.common import FileFormat, GenesisIntegrityError, MismatchPolicy
from ...protocol.types.genesis import EVMParams, GenesisAccount, GenesisState
from ...protocol.crypto.addresses import hex_to_address
from ...protocol.crypto.hash import sha256_file
from ...protocol.config.params import (
    CURRENT_CONFIG,
    MANIFEST_FILE,
    GenesisConfig,
    chunk_file_name,
    whole_file_name,
)

logger = logging.getLogger(__name__)


def read_stream_fully(f: BinaryIO, size: int, path: Optional[str] = None) -> bytes:
    """
    Reads exactly size bytes from f, tolerating partial reads.

    Raises:
        GenesisIntegrityError: a read returned no data before size bytes
    """
    buf = bytearray(size)
    view = memoryview(buf)
    got = 0
    while got < size:
        n = f.readinto(view[got:])
        if not n:
            raise GenesisIntegrityError(
                f"Short read: expected {size} bytes, got {got}", path=path, offset=got
            )
        got += n
    return bytes(buf)


def read_file_fully(path: Union[str, Path]) -> bytes:
    with open(path, "rb", buffering=0) as f:
        size = os.fstat(f.fileno()).st_size
        return read_stream_fully(f, size, str(path))


def read_part(path: Union[str, Path]) -> Tuple[EVMParams, List[GenesisAccount]]:
    """
    Decodes one chunked part file: header params, count, then exactly
    count account records.
    """
    path = str(path)
    f = io.BytesIO(read_file_fully(path))

    header = read_header(f, path)
    params = decode_record(EVMParams, header.params_payload, path, 0)

    accounts = []
    for _ in range(header.count):
        offset = f.tell()
        payload = read_frame(f, path)
        accounts.append(decode_record(GenesisAccount, payload, path, offset))

    if not at_eof(f):
        if header.count == 0:
            raise GenesisIntegrityError(
                "Part was never finalized: header count is 0 but records follow",
                path=path, offset=header.count_offset
            )
        raise GenesisIntegrityError(
            f"Trailing data after {header.count} records", path=path, offset=f.tell()
        )

    return params, accounts


class GenesisImporter:
    def __init__(self, registry: AccountRegistry, store: EVMStore, config: Optional[GenesisConfig] = None):
        self.registry = registry
        self.store = store
        self.config = config or CURRENT_CONFIG

    # --- Loading ---

    def _read_manifest(self, export_dir: Path) -> Optional[GenesisManifest]:
        manifest_path = export_dir / MANIFEST_FILE
        if not manifest_path.exists():
            return None

        with open(manifest_path, "r") as f:
            manifest = decode_record(GenesisManifest, f.read().encode(), str(manifest_path), 0)
        if sum(p.count for p in manifest.parts) != manifest.total_count:
            raise GenesisIntegrityError(
                f"Manifest total {manifest.total_count} does not match its parts",
                path=str(manifest_path)
            )
        return manifest

    def _resolve_parts(self, source: Path) -> List[Tuple[Path, Optional[PartInfo]]]:
        if source.is_file():
            # A single part is vouched for by the manifest next to it, if any
            manifest = self._read_manifest(source.parent)
            if manifest is not None:
                for part in manifest.parts:
                    if part.file_name == source.name:
                        return [(source, part)]
            return [(source, None)]

        if not source.is_dir():
            raise FileNotFoundError(f"Genesis source not found: {source}")

        manifest = self._read_manifest(source)
        if manifest is not None:
            return [(source / p.file_name, p) for p in sorted(manifest.parts, key=lambda p: p.index)]

        if self.config.write_manifest:
            # The manifest is written last; without it the export never finished
            raise GenesisIntegrityError(
                f"No {MANIFEST_FILE}: export did not complete", path=str(source)
            )

        parts = []
        index = 0
        while (source / chunk_file_name(index)).exists():
            parts.append((source / chunk_file_name(index), None))
            index += 1
        if not parts:
            raise FileNotFoundError(f"No genesis parts in {source}")
        return parts

    def load_chunked(self, source: Union[str, Path]) -> GenesisState:
        """Materializes the genesis state from one part file or a directory of parts."""
        params: Optional[EVMParams] = None
        accounts: List[GenesisAccount] = []

        for path, expected in self._resolve_parts(Path(source)):
            if expected is not None and expected.sha256 and sha256_file(path) != expected.sha256:
                raise GenesisIntegrityError("Part checksum does not match manifest", path=str(path))

            part_params, part_accounts = read_part(path)

            if expected is None and not part_accounts:
                raise GenesisIntegrityError(
                    "Header count is 0 and no manifest vouches for the part", path=str(path)
                )
            if expected is not None and len(part_accounts) != expected.count:
                raise GenesisIntegrityError(
                    f"Part holds {len(part_accounts)} records, manifest says {expected.count}",
                    path=str(path)
                )
            if params is None:
                params = part_params
            elif part_params != params:
                raise GenesisIntegrityError("Params differ between parts", path=str(path))

            logger.debug(f"Loaded {len(part_accounts)} accounts from {path}")
            accounts.extend(part_accounts)

        return GenesisState(params=params, accounts=accounts)

    def load_whole(self, source: Union[str, Path]) -> GenesisState:
        """Reads genesis_<module>.bin (or the given file) as one JSON document."""
        path = Path(source)
        if path.is_dir():
            path = path / whole_file_name(self.config.module_name)
        return decode_record(GenesisState, read_file_fully(path), str(path), 0)

    def load(self, source: Union[str, Path], file_format: Optional[FileFormat] = None) -> GenesisState:
        file_format = FileFormat(file_format or self.config.file_format)
        if file_format == FileFormat.WHOLE:
            return self.load_whole(source)
        return self.load_chunked(source)

    # --- Replay ---

    def _reject(self, error: GenesisIntegrityError, address: str, result: ImportResult):
        if self.config.mismatch_policy == MismatchPolicy.ABORT:
            raise error
        logger.warning(f"Skipping genesis account: {error}")
        result.skipped.append(address)

    def init_genesis(self, state: GenesisState, source: str = "<memory>") -> ImportResult:
        """
        Sets params, then validates and replays every account in order.

        No rollback: on failure, accounts before the failing one stay
        written. Wrap in StorageDB.atomic() for all-or-nothing.
        """
        result = ImportResult(source=source)

        self.store.set_params(state.params)

        for index, record in enumerate(state.accounts):
            live = self.registry.resolve_account(record.address)
            if live is None:
                self._reject(
                    GenesisIntegrityError("Account not found", address=record.address, index=index),
                    record.address, result
                )
                continue

            if not self.registry.is_managed(live):
                self._reject(
                    GenesisIntegrityError(
                        f"Account must be a contract account, got {live.kind.value}",
                        address=record.address, index=index
                    ),
                    record.address, result
                )
                continue

            code = record.code_bytes()
            code_hash = compute_code_hash(code)
            if not hashes_equal(live.code_hash_bytes(), code_hash):
                self._reject(
                    GenesisIntegrityError(
                        f"Code does not match code hash {live.code_hash}",
                        address=record.address, index=index
                    ),
                    record.address, result
                )
                continue

            result.storage_slots_written += replay_account(
                self.store, hex_to_address(record.address), code_hash, code, record.storage
            )
            result.accounts_imported += 1

        logger.info(
            f"Genesis import complete: {result.accounts_imported} accounts, "
            f"{result.storage_slots_written} storage slots, {len(result.skipped)} skipped"
        )
        return result

    def import_from(self, source: Union[str, Path], file_format: Optional[FileFormat] = None) -> ImportResult:
        logger.info(f"Importing EVM genesis from {source}")
        state = self.load(source, file_format)
        return self.init_genesis(state, source=str(source))
