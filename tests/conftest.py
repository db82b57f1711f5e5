import os
import pytest
from typing import Dict, Optional

from evmstate.blockchain.storage.db import StorageDB
from evmstate.blockchain.core.registry import AccountRegistry
from evmstate.blockchain.core.evm_store import EVMStore
from evmstate.protocol.types.common import AccountKind
from evmstate.protocol.crypto.hash import keccak256
from evmstate.protocol.crypto.addresses import hex_to_address, hex_to_hash

ADDR_A = "0x" + "a1" * 20
ADDR_B = "0x" + "b2" * 20


class Node:
    """Registry + store over one sqlite file."""

    def __init__(self, db_path: str):
        self.db = StorageDB(db_path)
        self.registry = AccountRegistry(self.db)
        self.store = EVMStore(self.db)

    def add_contract(self, address: str, code: bytes = b"", storage: Optional[Dict[str, str]] = None,
                     code_hash: Optional[bytes] = None, kind: AccountKind = AccountKind.CONTRACT):
        """Registers an account; code and storage go to the store."""
        real_hash = keccak256(code)
        acc = self.registry.new_account(
            address, kind=kind, code_hash="0x" + (code_hash or real_hash).hex()
        )
        self.registry.set_account(acc)
        self.store.set_code(real_hash, code)
        for k, v in (storage or {}).items():
            self.store.set_storage_value(hex_to_address(address), hex_to_hash(k), hex_to_hash(v))
        return acc

    def storage_of(self, address: str) -> Dict[str, str]:
        return {e.key: e.value for e in self.store.get_storage(hex_to_address(address))}


@pytest.fixture
def make_node(tmp_path):
    nodes = []

    def _make(name: str = "node") -> Node:
        node_dir = tmp_path / name
        os.makedirs(node_dir, exist_ok=True)
        node = Node(str(node_dir / "state.db"))
        nodes.append(node)
        return node

    yield _make

    for node in nodes:
        node.db.close()


@pytest.fixture
def source(make_node):
    return make_node("source")


@pytest.fixture
def target(make_node):
    return make_node("target")


def h32(value: int) -> str:
    """0x-prefixed 32-byte hex of an int."""
    return "0x" + value.to_bytes(32, "big").hex()
