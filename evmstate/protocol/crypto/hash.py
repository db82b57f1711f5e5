import hashlib
from eth_hash.auto import keccak

HASH_LENGTH = 32


def sha256_file(path, chunk_size: int = 1 << 20) -> str:
    """Returns SHA256 hex digest of a file, read in chunks."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def keccak256(data: bytes) -> bytes:
    """Returns Keccak-256 hash of bytes (Ethereum flavour, not SHA3-256)."""
    return keccak(data)


# Code hash of an account without code
EMPTY_CODE_HASH = keccak256(b"")
