"""
The immutable per-run snapshot shared read-only by every spam worker.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from . import config as core_config
from .accounts import Account, AccountPool
from .clients.base_client import INodeClient
from .corpus import Corpus, load_corpus
from .errors import ConfigError
from .generator import ProgramGenerator, RandomProgramGenerator
from .signer import Signer

logger = logging.getLogger(__name__)


def setup_n(client: INodeClient, account_count: int, gas_limit: int) -> int:
    """
    Derives the per-account transaction quota so that one spam round roughly
    fills a block: header gas limit / per-tx gas limit / account count.

    :param client: Node used to read the latest header.
    :param account_count: Number of accounts that will spam concurrently.
    :param gas_limit: Gas limit of each fuzzed transaction.
    :return: The quota, at least 1.
    """
    header = client.header_by_number(None)
    block_gas_limit = int(header['gasLimit'])
    per_account = block_gas_limit // max(1, gas_limit) // max(1, account_count)
    logger.info("Block gas limit %d allows %d transactions per account", block_gas_limit, per_account)
    return max(1, per_account)


def random_seed() -> int:
    return int.from_bytes(os.urandom(8), 'big')


@dataclass(frozen=True)
class SpamConfig:
    client: INodeClient
    faucet: Optional[Account]
    accounts: AccountPool
    n: int
    access_list: bool = False
    gas_limit: int = core_config.DEFAULT_TX_GAS_LIMIT
    seed: int = 0
    corpus: Optional[Corpus] = None
    generator: ProgramGenerator = field(default_factory=RandomProgramGenerator)
    signer: Signer = field(default_factory=Signer)
    cache_nonces: bool = False
    inter_tx_delay: float = core_config.INTER_TX_DELAY_SECONDS
    tx_timeout: float = core_config.TX_TIMEOUT_SECONDS

    def __post_init__(self):
        if len(self.accounts) == 0:
            raise ConfigError("SpamConfig requires at least one account")
        if self.n < 1:
            raise ConfigError(f"Transactions per account must be positive, got {self.n}")
        if self.gas_limit <= 0:
            raise ConfigError(f"Gas limit must be positive, got {self.gas_limit}")

    @classmethod
    def from_options(cls,
                     client: INodeClient,
                     accounts: AccountPool,
                     faucet_key: Optional[str] = None,
                     account_count: int = 0,
                     tx_per_account: int = core_config.DEFAULT_TX_PER_ACCOUNT,
                     access_list: bool = False,
                     gas_limit: int = core_config.DEFAULT_TX_GAS_LIMIT,
                     seed: int = 0,
                     corpus_path: Optional[str] = None,
                     generator: Optional[ProgramGenerator] = None,
                     cache_nonces: bool = False,
                     inter_tx_delay: float = core_config.INTER_TX_DELAY_SECONDS,
                     tx_timeout: float = core_config.TX_TIMEOUT_SECONDS
                    ) -> 'SpamConfig':
        """
        Builds a SpamConfig from driver options. An account count of zero or
        above the pool size selects the whole pool, a quota of zero is derived
        from the block gas limit and a seed of zero draws a fresh random seed.
        """
        pool = accounts.take(account_count)
        if len(pool) == 0:
            raise ConfigError("No accounts available to spam from")

        faucet = Account.from_key(faucet_key) if faucet_key else None

        n = tx_per_account
        if n <= 0:
            n = setup_n(client, len(pool), gas_limit)

        if seed == 0:
            seed = random_seed()
            logger.info("No seed provided, using random seed %d", seed)

        corpus = load_corpus(corpus_path) if corpus_path else None

        return cls(
            client=client,
            faucet=faucet,
            accounts=pool,
            n=n,
            access_list=access_list,
            gas_limit=gas_limit,
            seed=seed,
            corpus=corpus,
            generator=generator or RandomProgramGenerator(),
            cache_nonces=cache_nonces,
            inter_tx_delay=inter_tx_delay,
            tx_timeout=tx_timeout,
        )

    def require_faucet(self) -> Account:
        if self.faucet is None:
            raise ConfigError(f"No faucet key configured (set {core_config.FAUCET_KEY_ENV_VAR})")
        return self.faucet

    def __repr__(self) -> str:
        return (f"SpamConfig(accounts={len(self.accounts)}, n={self.n}, access_list={self.access_list}, "
                f"gas_limit={self.gas_limit}, seed={self.seed}, corpus={self.corpus}, "
                f"cache_nonces={self.cache_nonces})")
