from typing import List
import logging
from ...protocol.types.genesis import EVMParams, StorageEntry, FeeMarketParams
from ..storage.db import StorageDB

logger = logging.getLogger(__name__)

CODE_PREFIX = "code:"
STORAGE_PREFIX = "storage:"
EVM_PARAMS_KEY = "params:evm"


class EVMStore:
    """
    Code and storage of EVM accounts.

    Layout in the state table:
      code:<code hash hex>              -> code hex
      storage:<address hex>:<key hex>   -> value hex
      params:evm                        -> EVMParams JSON
    """

    def __init__(self, db: StorageDB):
        self.db = db

    # --- Code ---
    def get_code(self, code_hash: bytes) -> bytes:
        raw = self.db.get_state(f"{CODE_PREFIX}{code_hash.hex()}")
        return bytes.fromhex(raw) if raw else b""

    def set_code(self, code_hash: bytes, code: bytes):
        key = f"{CODE_PREFIX}{code_hash.hex()}"
        if code:
            self.db.set_state(key, code.hex())
        else:
            self.db.delete_state(key)

    # --- Storage ---
    def _storage_prefix(self, address: bytes) -> str:
        return f"{STORAGE_PREFIX}{address.hex()}:"

    def get_storage(self, address: bytes) -> List[StorageEntry]:
        """All slots of an account, ordered by key."""
        prefix = self._storage_prefix(address)
        return [
            StorageEntry(key=k[len(prefix):], value=v)
            for k, v in self.db.iter_state_by_prefix(prefix)
        ]

    def get_storage_value(self, address: bytes, key: bytes) -> bytes:
        raw = self.db.get_state(f"{self._storage_prefix(address)}{key.hex()}")
        return bytes.fromhex(raw) if raw else b"\x00" * 32

    def set_storage_value(self, address: bytes, key: bytes, value: bytes):
        self.db.set_state(f"{self._storage_prefix(address)}{key.hex()}", value.hex())

    # --- Params ---
    def get_params(self) -> EVMParams:
        raw = self.db.get_state(EVM_PARAMS_KEY)
        if raw:
            return EVMParams.model_validate_json(raw)
        return EVMParams()

    def set_params(self, params: EVMParams):
        self.db.set_state(EVM_PARAMS_KEY, params.model_dump_json())


FEEMARKET_PARAMS_KEY = "feemarket:params"
FEEMARKET_BASE_FEE_KEY = "feemarket:base_fee"
FEEMARKET_BLOCK_GAS_KEY = "feemarket:block_gas"


class FeeMarketStore:
    """EIP-1559 fee market: params, current base fee, gas used in last block."""

    def __init__(self, db: StorageDB):
        self.db = db

    def get_params(self) -> FeeMarketParams:
        raw = self.db.get_state(FEEMARKET_PARAMS_KEY)
        if raw:
            return FeeMarketParams.model_validate_json(raw)
        return FeeMarketParams()

    def set_params(self, params: FeeMarketParams):
        self.db.set_state(FEEMARKET_PARAMS_KEY, params.model_dump_json())

    def get_base_fee(self) -> int:
        raw = self.db.get_state(FEEMARKET_BASE_FEE_KEY)
        return int(raw) if raw else 0

    def set_base_fee(self, base_fee: int):
        if base_fee < 0:
            raise ValueError(f"Negative base fee: {base_fee}")
        self.db.set_state(FEEMARKET_BASE_FEE_KEY, str(base_fee))

    def get_block_gas_used(self) -> int:
        raw = self.db.get_state(FEEMARKET_BLOCK_GAS_KEY)
        return int(raw) if raw else 0

    def set_block_gas_used(self, gas: int):
        self.db.set_state(FEEMARKET_BLOCK_GAS_KEY, str(gas))
