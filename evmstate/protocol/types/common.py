from enum import Enum
from typing import Optional


class AccountKind(str, Enum):
    BASE = "BASE"           # Plain account, no code/storage
    CONTRACT = "CONTRACT"   # EVM account, carries code hash and storage
    MODULE = "MODULE"       # Module-owned account (fee collector, etc.)


class MismatchPolicy(str, Enum):
    ABORT = "abort"   # Fatal: stop the import at the offending account
    SKIP = "skip"     # Log, count and continue without replaying the account


class FileFormat(str, Enum):
    CHUNKED = "chunked"   # genesis0, genesis1, ... length-prefixed records
    WHOLE = "whole"       # genesis_<module>.bin, one JSON document


class ExportStatus(str, Enum):
    OK = "ok"
    TERMINATED = "terminated"
    FAILED = "failed"


class ProtocolError(Exception):
    pass


class GenesisError(ProtocolError):
    """Base class for genesis export/import failures."""


class GenesisIntegrityError(GenesisError):
    """
    Data does not match what the writer or the live store promised:
    code hash mismatch, missing target account, short read, unfinalized part.
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        index: Optional[int] = None,
        path: Optional[str] = None,
        offset: Optional[int] = None,
    ):
        self.address = address
        self.index = index
        self.path = path
        self.offset = offset

        context = []
        if address is not None:
            context.append(f"address={address}")
        if index is not None:
            context.append(f"index={index}")
        if path is not None:
            context.append(f"file={path}")
        if offset is not None:
            context.append(f"offset={offset}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class GenesisEncodingError(GenesisError):
    """Malformed record payload."""

    def __init__(self, message: str, path: Optional[str] = None, offset: Optional[int] = None):
        self.path = path
        self.offset = offset
        if path is not None:
            message = f"{message} (file={path}, offset={offset})"
        super().__init__(message)


class GenesisExportTerminated(GenesisError):
    """Export stopped because the execution context was cancelled."""

    def __init__(self, message: str = "genesis export terminated", accounts_written: int = 0):
        self.accounts_written = accounts_written
        super().__init__(message)
