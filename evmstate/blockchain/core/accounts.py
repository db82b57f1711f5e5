from pydantic import BaseModel, Field
from ...protocol.types.common import AccountKind
from ...protocol.crypto.hash import EMPTY_CODE_HASH


class Account(BaseModel):
    address: str                        # Bech32 account address (evm1...)
    eth_address: str                    # EIP-55 checksum hex of the same 20 bytes
    kind: AccountKind = AccountKind.BASE
    balance: int = 0
    nonce: int = 0

    # Keccak-256 of the account's code, 0x-prefixed
    code_hash: str = Field(default_factory=lambda: "0x" + EMPTY_CODE_HASH.hex())

    def code_hash_bytes(self) -> bytes:
        return bytes.fromhex(self.code_hash[2:])

    @property
    def has_code_storage(self) -> bool:
        """Only contract-kind accounts carry code and storage."""
        return self.kind == AccountKind.CONTRACT
