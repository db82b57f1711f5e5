# MIT License
# Copyright (c) 2025 Hashborn

"""
State replay and validation helpers shared by export and import.
"""

import hmac
from typing import Iterable

from ..core.evm_store import EVMStore
from ...protocol.types.genesis import StorageEntry
from ...protocol.crypto.hash import keccak256
from ...protocol.crypto.addresses import bytes_to_hex


def compute_code_hash(code: bytes) -> bytes:
    return keccak256(code)


def hashes_equal(a: bytes, b: bytes) -> bool:
    return hmac.compare_digest(a, b)


def code_to_hex(code: bytes) -> str:
    """Code as stored in a GenesisAccount record (no 0x prefix)."""
    return bytes_to_hex(code)


def replay_account(store: EVMStore, address: bytes, code_hash: bytes, code: bytes,
                   storage: Iterable[StorageEntry]) -> int:
    """
    Writes validated code and every storage slot of one account.

    Returns:
        Number of storage slots written
    """
    store.set_code(code_hash, code)

    written = 0
    for entry in storage:
        store.set_storage_value(address, entry.key_bytes(), entry.value_bytes())
        written += 1
    return written
