# MIT License
# Copyright (c) 2025 Hashborn

"""
Public entry points for genesis export/import.

These are the only places that catch broadly: every outcome is turned into
an ExportResult/ImportResult with status ok, terminated or failed.
Unexpected failures are logged with a stack trace.
"""

import contextlib
import logging
import time
from pathlib import Path
from typing import Optional, Union

from .context import ExecutionContext
from .exporter import GenesisExporter
from .importer import GenesisImporter
from .types import ExportResult, ImportResult
from .feemarket import FeeMarketGenesis
from ..core.evm_store import EVMStore, FeeMarketStore
from ..core.registry import AccountRegistry
from ..observability.metrics import record_export, record_import
from ...protocol.types.common import (
    ExportStatus,
    FileFormat,
    GenesisError,
    GenesisExportTerminated,
)
from ...protocol.config.params import (
    CURRENT_CONFIG,
    FEEMARKET_MODULE_NAME,
    GenesisConfig,
    whole_file_name,
)

logger = logging.getLogger(__name__)


def export_genesis_files(
    registry: AccountRegistry,
    store: EVMStore,
    export_dir: Union[str, Path],
    ctx: Optional[ExecutionContext] = None,
    config: Optional[GenesisConfig] = None,
    feemarket_store: Optional[FeeMarketStore] = None
) -> ExportResult:
    """
    Args:
        feemarket_store: Also write genesis_feemarket.bin once the EVM
            export succeeded
    """
    config = config or CURRENT_CONFIG
    exporter = GenesisExporter(registry, store, config)
    started = time.monotonic()

    try:
        if config.file_format == FileFormat.WHOLE:
            result = exporter.export_whole(export_dir, ctx)
        else:
            result = exporter.export_to(export_dir, ctx)
        if feemarket_store is not None:
            result.feemarket_file = str(FeeMarketGenesis(feemarket_store).export_to(export_dir))
    except GenesisExportTerminated as e:
        logger.warning(f"{e}; partial files left in {export_dir} are not valid")
        result = ExportResult(
            status=ExportStatus.TERMINATED,
            file_format=config.file_format,
            export_dir=str(export_dir),
            accounts_exported=e.accounts_written,
            error=str(e)
        )
    except (GenesisError, OSError) as e:
        logger.error(f"Genesis export failed: {e}")
        result = ExportResult(
            status=ExportStatus.FAILED,
            file_format=config.file_format,
            export_dir=str(export_dir),
            error=str(e)
        )
    except Exception as e:
        logger.exception(f"Unexpected error during genesis export: {e}")
        result = ExportResult(
            status=ExportStatus.FAILED,
            file_format=config.file_format,
            export_dir=str(export_dir),
            error=f"{type(e).__name__}: {e}"
        )

    record_export(result, time.monotonic() - started)
    return result


def import_genesis_files(
    registry: AccountRegistry,
    store: EVMStore,
    source: Union[str, Path],
    config: Optional[GenesisConfig] = None,
    atomic: bool = False,
    feemarket_store: Optional[FeeMarketStore] = None
) -> ImportResult:
    """
    Args:
        atomic: Run the replay inside one StorageDB transaction so that a
            failed import leaves the store untouched
        feemarket_store: Also load genesis_feemarket.bin when the source
            directory holds one, inside the same boundary
    """
    config = config or CURRENT_CONFIG
    importer = GenesisImporter(registry, store, config)
    started = time.monotonic()

    boundary = store.db.atomic() if atomic else contextlib.nullcontext()
    try:
        with boundary:
            result = importer.import_from(source)
            feemarket_file = Path(source) / whole_file_name(FEEMARKET_MODULE_NAME)
            if feemarket_store is not None and Path(source).is_dir() and feemarket_file.exists():
                FeeMarketGenesis(feemarket_store).import_from(source)
                result.feemarket_imported = True
    except (GenesisError, OSError) as e:
        logger.error(f"Genesis import failed: {e}")
        result = ImportResult(status=ExportStatus.FAILED, source=str(source), error=str(e))
    except Exception as e:
        logger.exception(f"Unexpected error during genesis import: {e}")
        result = ImportResult(
            status=ExportStatus.FAILED,
            source=str(source),
            error=f"{type(e).__name__}: {e}"
        )

    record_import(result, time.monotonic() - started)
    return result
