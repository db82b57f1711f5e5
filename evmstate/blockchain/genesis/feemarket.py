# MIT License
# Copyright (c) 2025 Hashborn

"""
Fee market module genesis (whole-buffer variant only).
"""

import logging
from pathlib import Path
from typing import Union

from .codec import decode_record
from .importer import read_file_fully
from ..core.evm_store import FeeMarketStore
from ...protocol.types.genesis import FeeMarketGenesisState
from ...protocol.config.params import FEEMARKET_MODULE_NAME, whole_file_name

logger = logging.getLogger(__name__)


class FeeMarketGenesis:
    def __init__(self, store: FeeMarketStore):
        self.store = store

    def export_genesis(self) -> FeeMarketGenesisState:
        return FeeMarketGenesisState(
            params=self.store.get_params(),
            base_fee=self.store.get_base_fee(),
            block_gas=self.store.get_block_gas_used()
        )

    def init_genesis(self, state: FeeMarketGenesisState):
        self.store.set_params(state.params)
        self.store.set_base_fee(state.base_fee)
        self.store.set_block_gas_used(state.block_gas)

    def export_to(self, export_dir: Union[str, Path]) -> Path:
        export_dir = Path(export_dir)
        export_dir.mkdir(parents=True, exist_ok=True)

        path = export_dir / whole_file_name(FEEMARKET_MODULE_NAME)
        with open(path, "wb") as f:
            f.write(self.export_genesis().model_dump_json().encode())

        logger.info(f"Fee market genesis written to {path}")
        return path

    def import_from(self, import_dir: Union[str, Path]) -> FeeMarketGenesisState:
        path = Path(import_dir) / whole_file_name(FEEMARKET_MODULE_NAME)
        state = decode_record(FeeMarketGenesisState, read_file_fully(path), str(path), 0)
        self.init_genesis(state)

        logger.info(f"Fee market genesis loaded from {path}: base fee {state.base_fee}")
        return state
