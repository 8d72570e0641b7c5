"""
Manages the static pool of pre-provisioned accounts used by the spammer.
"""
import logging
from typing import Iterable, List, Optional, Set

import pandas as pd
from eth_account import Account as EthAccount
from eth_account.signers.local import LocalAccount
from web3 import Web3

from . import config as core_config
from .errors import ConfigError

logger = logging.getLogger(__name__)


class Account:
    """
    An identity able to sign and hold a balance. The nonce is never cached
    here; the network is the authority for it.
    """
    def __init__(self, local_account: LocalAccount, index: int = 0):
        self._local_account: LocalAccount = local_account
        self.index: int = index

    @classmethod
    def from_key(cls, private_key: str, index: int = 0) -> 'Account':
        try:
            return cls(EthAccount.from_key(private_key), index)
        except (ValueError, TypeError) as e:
            raise ConfigError(f"Invalid private key for account #{index}: {e}") from e

    @property
    def address(self) -> str:
        return self._local_account.address

    @property
    def local_account(self) -> LocalAccount:
        return self._local_account

    @property
    def private_key_hex(self) -> str:
        return "0x" + bytes(self._local_account.key).hex()

    def __repr__(self) -> str:
        return f"Account(idx={self.index}, address='{self.address}')"


def _is_valid_key_format(private_key: str) -> bool:
    return len(private_key) == 64 or (private_key.startswith('0x') and len(private_key) == 66)


class AccountPool:
    """
    Loads accounts from CSV key files (columns 'pub_key' and 'priv_key') or
    from explicit private keys. Each account is owned by the pool for the
    process lifetime and handed to exactly one spam worker.
    """
    def __init__(self, accounts: Optional[List[Account]] = None):
        self._accounts: List[Account] = []
        self._seen: Set[str] = set()
        for account in accounts or []:
            self._add(account.local_account)

    def _add(self, local_account: LocalAccount) -> bool:
        if local_account.address in self._seen:
            return False
        account = Account(local_account, len(self._accounts))
        self._accounts.append(account)
        self._seen.add(account.address)
        return True

    @classmethod
    def from_private_keys(cls, private_keys: Iterable[str],
                          max_accounts_to_load: int = core_config.MAX_ACCOUNTS_TO_LOAD) -> 'AccountPool':
        pool = cls()
        for private_key in private_keys:
            if len(pool) >= max_accounts_to_load:
                break
            pool._add(Account.from_key(private_key, len(pool)).local_account)
        return pool

    @classmethod
    def from_key_files(cls, key_file_paths: Optional[List[str]] = None,
                       max_accounts_to_load: int = core_config.MAX_ACCOUNTS_TO_LOAD) -> 'AccountPool':
        """
        Loads account keys from the given CSV files, skipping malformed rows
        and rows whose 'pub_key' does not match the derived address.

        :param key_file_paths: CSV files to read, defaults to core_config.DEFAULT_KEY_FILE_PRIMARY.
        :param max_accounts_to_load: Maximum number of unique accounts to load.
        """
        if key_file_paths is None:
            key_file_paths = [core_config.DEFAULT_KEY_FILE_PRIMARY]

        pool = cls()
        logger.info("AccountPool attempting to load up to %d accounts.", max_accounts_to_load)
        for file_path in key_file_paths:
            if len(pool) >= max_accounts_to_load:
                break
            try:
                key_data_frame = pd.read_csv(file_path, dtype=str)
            except FileNotFoundError:
                logger.warning("Key file not found: %s", file_path)
                continue
            except pd.errors.EmptyDataError:
                logger.warning("Key file is empty: %s", file_path)
                continue

            if 'pub_key' not in key_data_frame.columns or 'priv_key' not in key_data_frame.columns:
                raise ConfigError(f"Key file {file_path} must have 'pub_key' and 'priv_key' columns")

            for row_number, row_data in key_data_frame.iterrows():
                if len(pool) >= max_accounts_to_load:
                    break
                private_key_str = str(row_data['priv_key']).strip()
                if not _is_valid_key_format(private_key_str):
                    logger.warning("Skipping row %s in %s: invalid private key format.", row_number, file_path)
                    continue
                try:
                    local_account = EthAccount.from_key(private_key_str)
                    expected_address = Web3.to_checksum_address(str(row_data['pub_key']).strip())
                except ValueError as e:
                    logger.warning("Skipping row %s in %s: %s", row_number, file_path, e)
                    continue
                if local_account.address != expected_address:
                    logger.warning("Skipping row %s in %s: key does not match address %s.",
                                   row_number, file_path, expected_address)
                    continue
                pool._add(local_account)

        logger.info("AccountPool loaded %d accounts.", len(pool))
        return pool

    def take(self, count: int) -> 'AccountPool':
        """
        Returns a pool with the first `count` accounts. A count of zero or one
        exceeding the pool size is sanitized to the full pool.
        """
        if count <= 0 or count > len(self._accounts):
            logger.info("Sanitizing account count from %d to %d", count, len(self._accounts))
            count = len(self._accounts)
        return AccountPool(self._accounts[:count])

    def __getitem__(self, index: int) -> Account:
        return self._accounts[index]

    def __iter__(self):
        return iter(self._accounts)

    def __len__(self) -> int:
        return len(self._accounts)

    @property
    def addresses(self) -> List[str]:
        """Returns a copy of the list of pool addresses in load order."""
        return [account.address for account in self._accounts]


def create_accounts(count: int, output_path: Optional[str] = None) -> List[Account]:
    """
    Generates `count` fresh accounts and, if `output_path` is given, writes
    them as a key CSV file that AccountPool.from_key_files can read back.
    """
    accounts = [Account(EthAccount.create(), index) for index in range(count)]
    if output_path:
        key_data_frame = pd.DataFrame({
            'pub_key': [account.address for account in accounts],
            'priv_key': [account.private_key_hex for account in accounts],
        })
        key_data_frame.to_csv(output_path, index=False)
        logger.info("Wrote %d new accounts to %s", count, output_path)
    return accounts
