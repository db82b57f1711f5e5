# MIT License
# Copyright (c) 2025 Hashborn

"""
Genesis Exporter

Serializes EVM params plus the code and storage of every contract account,
either as chunked length-prefixed part files or as one JSON document.
"""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from .codec import encode_record
from .context import ExecutionContext
from .replay import code_to_hex
from .types import ExportResult, GenesisManifest
from .writer import ChunkedExportSession
from ..core.accounts import Account
from ..core.evm_store import EVMStore
from ..core.registry import AccountRegistry
from ...protocol.types.common import FileFormat, GenesisExportTerminated
from ...protocol.types.genesis import GenesisAccount, GenesisState
from ...protocol.crypto.addresses import hex_to_address
from ...protocol.config.params import (
    CURRENT_CONFIG,
    CHUNK_FILE_BASE,
    MANIFEST_FILE,
    GenesisConfig,
    whole_file_name,
)

logger = logging.getLogger(__name__)

_PART_NAME = re.compile(rf"^{CHUNK_FILE_BASE}\d+$")


class GenesisExporter:
    """
    Reads a point-in-time view of the registry and EVM store and writes it
    out. Never mutates ledger state.
    """

    def __init__(self, registry: AccountRegistry, store: EVMStore, config: Optional[GenesisConfig] = None):
        self.registry = registry
        self.store = store
        self.config = config or CURRENT_CONFIG

    def _genesis_account(self, account: Account) -> GenesisAccount:
        address = hex_to_address(account.eth_address)
        return GenesisAccount(
            address=account.eth_address,
            code=code_to_hex(self.store.get_code(account.code_hash_bytes())),
            storage=self.store.get_storage(address)
        )

    def export_genesis(self, ctx: Optional[ExecutionContext] = None) -> GenesisState:
        """
        Builds the full genesis state in memory.

        Raises:
            GenesisExportTerminated: ctx was cancelled or its deadline passed
        """
        ctx = ctx or ExecutionContext.background()
        accounts: List[GenesisAccount] = []

        def visit(account: Account) -> bool:
            if ctx.done():
                # Nothing reaches disk before the whole state is built
                raise GenesisExportTerminated(
                    f"genesis export terminated: {ctx.reason()} after {len(accounts)} accounts",
                    accounts_written=len(accounts)
                )
            if not self.registry.is_managed(account):
                return False
            accounts.append(self._genesis_account(account))
            return False

        self.registry.iterate_accounts(visit)
        return GenesisState(params=self.store.get_params(), accounts=accounts)

    def _clear_previous_export(self, export_dir: Path):
        # A manifest or higher-numbered part from an older run would make a
        # partial export look complete.
        manifest = export_dir / MANIFEST_FILE
        if manifest.exists():
            manifest.unlink()
        for path in export_dir.iterdir():
            if path.is_file() and _PART_NAME.match(path.name):
                logger.info(f"Removing part from previous export: {path}")
                path.unlink()

    def export_to(self, export_dir: Union[str, Path], ctx: Optional[ExecutionContext] = None) -> ExportResult:
        """
        Chunked export into export_dir (genesis0, genesis1, ...).

        Raises:
            GenesisExportTerminated: ctx was cancelled or its deadline passed;
                part files are left on disk with unpatched (zero) counts
            OSError: any file create/write failure
        """
        export_dir = Path(export_dir)
        ctx = ctx or ExecutionContext.background()

        export_dir.mkdir(parents=True, exist_ok=True)
        self._clear_previous_export(export_dir)

        logger.info(f"Exporting EVM genesis to {export_dir} (rollover at {self.config.rollover_threshold} bytes)")

        params_payload = encode_record(self.store.get_params())
        session = ChunkedExportSession(export_dir, params_payload, self.config.rollover_threshold)

        def visit(account: Account) -> bool:
            if ctx.done():
                raise GenesisExportTerminated(
                    f"genesis export terminated: {ctx.reason()} after {session.total_count} accounts",
                    accounts_written=session.total_count
                )
            if not self.registry.is_managed(account):
                return False
            session.append(encode_record(self._genesis_account(account)))
            return False

        try:
            self.registry.iterate_accounts(visit)
        finally:
            session.close()

        parts = session.finalize()

        if self.config.write_manifest:
            manifest = GenesisManifest(
                module=self.config.module_name,
                timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
                total_count=session.total_count,
                parts=parts
            )
            with open(export_dir / MANIFEST_FILE, "w") as f:
                f.write(manifest.model_dump_json(indent=2))

        logger.info(
            f"Genesis export complete: {session.total_count} accounts in {len(parts)} part(s), "
            f"{session.bytes_written / 1024:.2f} KB"
        )

        return ExportResult(
            file_format=FileFormat.CHUNKED,
            export_dir=str(export_dir),
            accounts_exported=session.total_count,
            bytes_written=session.bytes_written,
            parts=parts
        )

    def export_whole(self, export_dir: Union[str, Path], ctx: Optional[ExecutionContext] = None) -> ExportResult:
        """Whole-buffer export: one JSON document in genesis_<module>.bin."""
        export_dir = Path(export_dir)
        export_dir.mkdir(parents=True, exist_ok=True)

        state = self.export_genesis(ctx)
        data = state.model_dump_json().encode()

        path = export_dir / whole_file_name(self.config.module_name)
        with open(path, "wb") as f:
            f.write(data)

        logger.info(f"Genesis export complete: {len(state.accounts)} accounts written to {path}")

        return ExportResult(
            file_format=FileFormat.WHOLE,
            export_dir=str(export_dir),
            accounts_exported=len(state.accounts),
            bytes_written=len(data)
        )
