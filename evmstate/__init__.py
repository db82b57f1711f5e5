# MIT License
# Copyright (c) 2025 Hashborn

"""
evmstate - EVM module genesis state export/import.
"""

__version__ = "0.1.0"
