# MIT License
# Copyright (c) 2025 Hashborn

from typing import Dict
from ..types.common import MismatchPolicy, FileFormat

# Module names (used in whole-buffer file names)
EVM_MODULE_NAME = "evm"
FEEMARKET_MODULE_NAME = "feemarket"

# Bech32 prefix for registry account addresses
ACCOUNT_PREFIX = "evm"

# Chunked export file naming: genesis0, genesis1, ...
CHUNK_FILE_BASE = "genesis"
MANIFEST_FILE = "genesis_manifest.json"

# Roll over to a new part once a part exceeds this many bytes
DEFAULT_ROLLOVER_THRESHOLD = 100_000_000


def whole_file_name(module_name: str) -> str:
    """genesis_<module>.bin"""
    return f"genesis_{module_name}.bin"


def chunk_file_name(index: int) -> str:
    return f"{CHUNK_FILE_BASE}{index}"


class GenesisConfig:
    def __init__(self,
                 name: str,
                 rollover_threshold: int = DEFAULT_ROLLOVER_THRESHOLD,
                 mismatch_policy: MismatchPolicy = MismatchPolicy.ABORT,
                 file_format: FileFormat = FileFormat.CHUNKED,
                 module_name: str = EVM_MODULE_NAME,
                 write_manifest: bool = True):
        if rollover_threshold <= 0:
            raise ValueError(f"rollover_threshold must be positive, got {rollover_threshold}")
        self.name = name
        self.rollover_threshold = rollover_threshold
        self.mismatch_policy = MismatchPolicy(mismatch_policy)
        self.file_format = FileFormat(file_format)
        self.module_name = module_name
        self.write_manifest = write_manifest

    def copy(self, **overrides) -> "GenesisConfig":
        values = dict(
            name=self.name,
            rollover_threshold=self.rollover_threshold,
            mismatch_policy=self.mismatch_policy,
            file_format=self.file_format,
            module_name=self.module_name,
            write_manifest=self.write_manifest,
        )
        values.update(overrides)
        return GenesisConfig(**values)


CONFIGS: Dict[str, GenesisConfig] = {
    "default": GenesisConfig(name="default"),
    "devnet": GenesisConfig(
        name="devnet",
        # Small parts so rollover is exercised on tiny chains
        rollover_threshold=1_000_000,
    ),
}

CURRENT_CONFIG = CONFIGS["default"]
