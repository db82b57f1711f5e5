# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Exports genesis export/import metrics in Prometheus format.

Metrics:
- Accounts exported / imported / skipped
- Bytes and part files written
- Operation outcomes (ok / terminated / failed) and durations
"""

from prometheus_client import Counter, Histogram, CollectorRegistry

from ...protocol.types.common import ExportStatus

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# GENESIS METRICS
# ═══════════════════════════════════════════════════════════════════

genesis_operations_total = Counter(
    'evmstate_genesis_operations_total',
    'Genesis export/import runs by outcome',
    ['operation', 'status'],
    registry=metrics_registry
)

genesis_operation_seconds = Histogram(
    'evmstate_genesis_operation_seconds',
    'Duration of genesis export/import runs',
    ['operation'],
    buckets=[0.1, 1, 5, 30, 60, 300, 900, 3600],
    registry=metrics_registry
)

genesis_accounts_exported_total = Counter(
    'evmstate_genesis_accounts_exported_total',
    'Account records written to genesis files',
    registry=metrics_registry
)

genesis_accounts_imported_total = Counter(
    'evmstate_genesis_accounts_imported_total',
    'Account records replayed into the store',
    registry=metrics_registry
)

genesis_accounts_skipped_total = Counter(
    'evmstate_genesis_accounts_skipped_total',
    'Account records skipped by the mismatch policy',
    registry=metrics_registry
)

genesis_bytes_written_total = Counter(
    'evmstate_genesis_bytes_written_total',
    'Bytes written to genesis files',
    registry=metrics_registry
)

genesis_parts_written_total = Counter(
    'evmstate_genesis_parts_written_total',
    'Finalized part files of chunked exports',
    registry=metrics_registry
)


def record_export(result, duration: float):
    """
    Update metrics after an export run.

    Args:
        result: ExportResult
        duration: Wall time in seconds
    """
    genesis_operations_total.labels(operation='export', status=result.status.value).inc()
    genesis_operation_seconds.labels(operation='export').observe(duration)
    # Terminated runs leave invalid files behind, only finished exports count
    if result.status != ExportStatus.OK:
        return
    genesis_accounts_exported_total.inc(result.accounts_exported)
    genesis_bytes_written_total.inc(result.bytes_written)
    genesis_parts_written_total.inc(len(result.parts))


def record_import(result, duration: float):
    """
    Update metrics after an import run.

    Args:
        result: ImportResult
        duration: Wall time in seconds
    """
    genesis_operations_total.labels(operation='import', status=result.status.value).inc()
    genesis_operation_seconds.labels(operation='import').observe(duration)
    if result.status != ExportStatus.OK:
        return
    genesis_accounts_imported_total.inc(result.accounts_imported)
    genesis_accounts_skipped_total.inc(len(result.skipped))
