import bech32 # type: ignore
from .hash import keccak256, HASH_LENGTH

ADDRESS_LENGTH = 20


def strip_hex_prefix(value: str) -> str:
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def hex_to_bytes(value: str) -> bytes:
    """Decodes hex text (optional 0x prefix, odd length allowed) to bytes."""
    value = strip_hex_prefix(value.strip())
    if len(value) % 2 == 1:
        value = "0" + value
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise ValueError(f"Invalid hex string: {value!r}")


def bytes_to_hex(data: bytes, prefix: bool = False) -> str:
    """Encodes bytes as lowercase hex text."""
    return ("0x" if prefix else "") + data.hex()


def _fit(data: bytes, length: int) -> bytes:
    # Longer input keeps the rightmost bytes, shorter input is left-padded
    if len(data) > length:
        data = data[-length:]
    return data.rjust(length, b"\x00")


def hex_to_address(value: str) -> bytes:
    """Hex text to a 20-byte address."""
    return _fit(hex_to_bytes(value), ADDRESS_LENGTH)


def hex_to_hash(value: str) -> bytes:
    """Hex text to a 32-byte hash (storage keys and values)."""
    return _fit(hex_to_bytes(value), HASH_LENGTH)


def to_checksum_address(address: bytes) -> str:
    """EIP-55 mixed-case checksum encoding of a 20-byte address."""
    if len(address) != ADDRESS_LENGTH:
        raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(address)}")

    lower = address.hex()
    digest = keccak256(lower.encode()).hex()
    out = []
    for ch, nibble in zip(lower, digest):
        out.append(ch.upper() if int(nibble, 16) >= 8 else ch)
    return "0x" + "".join(out)


def normalize_address(value: str) -> str:
    """Any hex address form to its checksum form."""
    return to_checksum_address(hex_to_address(value))


def account_address(address: bytes, prefix: str = "evm") -> str:
    """Bech32 account address for a 20-byte address (registry key)."""
    five_bit_r = bech32.convertbits(address, 8, 5)
    if five_bit_r is None:
        raise ValueError("Error converting to bech32 words")

    return bech32.bech32_encode(prefix, five_bit_r)


def decode_account_address(addr: str) -> bytes:
    """Decodes a Bech32 account address back to its 20 bytes."""
    hrp, data = bech32.bech32_decode(addr)
    if hrp is None or data is None:
        raise ValueError("Invalid bech32 address")

    decoded = bech32.convertbits(data, 5, 8, False)
    if decoded is None:
        raise ValueError("Error converting from bech32 words")

    return bytes(decoded)
