"""
Genesis Data Structures

Records written to and read from genesis export files. Each model is
serialized as compact JSON; the framing codec treats that JSON as an
opaque payload.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List

from ..crypto.addresses import (
    hex_to_bytes,
    hex_to_hash,
    normalize_address,
    strip_hex_prefix,
    bytes_to_hex,
)


class EVMParams(BaseModel):
    """EVM module parameters (one record per export)."""
    evm_denom: str = Field(default="aevm", description="Denomination used for EVM gas and value")
    enable_create: bool = Field(default=True, description="Allow contract creation")
    enable_call: bool = Field(default=True, description="Allow contract calls")
    extra_eips: List[int] = Field(default_factory=list, description="Additional activated EIPs")
    chain_id: int = Field(default=9000, description="EIP-155 chain id")
    min_gas_price: int = Field(default=0, description="Minimum accepted gas price")
    block_gas_limit: int = Field(default=30_000_000, description="Gas limit per block")


class StorageEntry(BaseModel):
    """One storage slot: 32-byte key and value as 0x-prefixed hex."""
    key: str
    value: str

    @field_validator("key", "value")
    @classmethod
    def _normalize_hash(cls, v: str) -> str:
        return bytes_to_hex(hex_to_hash(v), prefix=True)

    def key_bytes(self) -> bytes:
        return hex_to_hash(self.key)

    def value_bytes(self) -> bytes:
        return hex_to_hash(self.value)


class GenesisAccount(BaseModel):
    """
    Code and storage of one EVM account.

    `code` is hex text without prefix and may be empty.
    """
    address: str
    code: str = ""
    storage: List[StorageEntry] = Field(default_factory=list)

    @field_validator("address")
    @classmethod
    def _normalize_address(cls, v: str) -> str:
        return normalize_address(v)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        v = strip_hex_prefix(v).lower()
        hex_to_bytes(v)
        return v

    def code_bytes(self) -> bytes:
        return hex_to_bytes(self.code) if self.code else b""


class GenesisState(BaseModel):
    """Complete EVM module genesis: params plus accounts in registry order."""
    params: EVMParams = Field(default_factory=EVMParams)
    accounts: List[GenesisAccount] = Field(default_factory=list)


class FeeMarketParams(BaseModel):
    """EIP-1559 fee market parameters."""
    no_base_fee: bool = False
    base_fee_change_denominator: int = 8
    elasticity_multiplier: int = 2
    enable_height: int = 0
    initial_base_fee: int = 1_000_000_000


class FeeMarketGenesisState(BaseModel):
    """Fee market module genesis."""
    params: FeeMarketParams = Field(default_factory=FeeMarketParams)
    base_fee: int = 0
    block_gas: int = 0
