import pytest

from evmstate.protocol.crypto.hash import keccak256, EMPTY_CODE_HASH
from evmstate.protocol.crypto.addresses import (
    account_address,
    decode_account_address,
    hex_to_address,
    hex_to_bytes,
    hex_to_hash,
    normalize_address,
    to_checksum_address,
)
from evmstate.blockchain.genesis.replay import compute_code_hash, hashes_equal
from evmstate.protocol.types.genesis import GenesisAccount, StorageEntry


def test_keccak_empty():
    assert EMPTY_CODE_HASH.hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    assert compute_code_hash(b"") == EMPTY_CODE_HASH


def test_hashes_equal():
    assert hashes_equal(keccak256(b"\x60\x01"), compute_code_hash(bytes.fromhex("6001")))
    assert not hashes_equal(keccak256(b"a"), keccak256(b"b"))


@pytest.mark.parametrize("checksummed", [
    "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
    "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
    "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
])
def test_eip55_checksum(checksummed):
    assert to_checksum_address(hex_to_address(checksummed.lower())) == checksummed
    assert normalize_address(checksummed.upper().replace("0X", "0x")) == checksummed


def test_hex_to_hash_left_pads():
    assert hex_to_hash("0x1") == b"\x00" * 31 + b"\x01"
    assert hex_to_hash("01" * 40) == b"\x01" * 32


def test_hex_to_bytes_rejects_garbage():
    with pytest.raises(ValueError, match="Invalid hex"):
        hex_to_bytes("0xzz")


def test_bech32_account_address_round_trip():
    raw = hex_to_address("0x" + "ab" * 20)
    addr = account_address(raw)
    assert addr.startswith("evm1")
    assert decode_account_address(addr) == raw


def test_genesis_account_normalizes_fields():
    account = GenesisAccount(
        address="0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed",
        code="0x6001",
        storage=[StorageEntry(key="0x1", value="0x02")]
    )
    assert account.address == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
    assert account.code == "6001"
    assert account.code_bytes() == b"\x60\x01"
    assert account.storage[0].key == "0x" + "00" * 31 + "01"
