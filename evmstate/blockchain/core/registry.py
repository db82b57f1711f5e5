from typing import Callable, Optional
import logging
from .accounts import Account
from ...protocol.types.common import AccountKind
from ...protocol.crypto.addresses import (
    account_address,
    hex_to_address,
    to_checksum_address,
)
from ...protocol.config.params import ACCOUNT_PREFIX
from ..storage.db import StorageDB

logger = logging.getLogger(__name__)

ACCOUNT_KEY_PREFIX = "acc:"


class AccountRegistry:
    """
    Account registry backed by the state table.

    Accounts are stored under `acc:<bech32 address>` and enumerated in key
    order, which is the registry-defined iteration order.
    """

    def __init__(self, db: StorageDB, prefix: str = ACCOUNT_PREFIX):
        self.db = db
        self.prefix = prefix

    def new_account(self, eth_address: str, kind: AccountKind = AccountKind.BASE, **fields) -> Account:
        """Builds (does not store) an account for a hex address."""
        raw = hex_to_address(eth_address)
        return Account(
            address=account_address(raw, self.prefix),
            eth_address=to_checksum_address(raw),
            kind=kind,
            **fields
        )

    def set_account(self, account: Account):
        self.db.set_state(f"{ACCOUNT_KEY_PREFIX}{account.address}", account.model_dump_json())

    def get_account(self, address: str) -> Optional[Account]:
        """Lookup by bech32 account address."""
        raw_json = self.db.get_state(f"{ACCOUNT_KEY_PREFIX}{address}")
        if raw_json:
            return Account.model_validate_json(raw_json)
        return None

    def resolve_account(self, eth_address: str) -> Optional[Account]:
        """Lookup by hex address; None if the account does not exist."""
        raw = hex_to_address(eth_address)
        return self.get_account(account_address(raw, self.prefix))

    def iterate_accounts(self, visit: Callable[[Account], bool]):
        """
        Calls visit for every account in registry order.

        Iteration stops as soon as visit returns True.
        """
        for _, value in self.db.iter_state_by_prefix(ACCOUNT_KEY_PREFIX):
            if visit(Account.model_validate_json(value)):
                return

    @staticmethod
    def is_managed(account: Account) -> bool:
        """True for accounts whose code and storage the EVM module owns."""
        return account.has_code_storage
