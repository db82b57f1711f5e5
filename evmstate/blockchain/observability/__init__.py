# MIT License
# Copyright (c) 2025 Hashborn

"""
Observability Module

Prometheus metrics for genesis export/import runs.
"""

from .metrics import metrics_registry, record_export, record_import

__all__ = ['metrics_registry', 'record_export', 'record_import']
