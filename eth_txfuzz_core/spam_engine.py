"""
The concurrent spam scheduler.

One worker per pool account runs Fetch nonce -> Build -> Sign -> Submit ->
Sleep, N times, then waits for its last transaction to be mined. Workers are
launched together as one fan-out/fan-in group; a failing worker stops on
its first error without affecting its siblings.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from . import config as core_config
from .accounts import Account
from .clients.base_client import INodeClient
from .errors import ConfirmationTimeout, NodeConnectionError
from .mutation import WorkerRandomness, prepare_worker_randomness
from .spam_config import SpamConfig
from .strategies.blob_strategy import random_blob_tx
from .strategies.registry import random_valid_tx
from .tx import Transaction

logger = logging.getLogger(__name__)


@dataclass
class SpamResult:
    """Outcome of one account's worker: how many transactions went out and the error that stopped it."""
    index: int
    address: str
    sent: int = 0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SpamOutcome:
    results: List[SpamResult] = field(default_factory=list)
    first_error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.first_error is None

    @property
    def total_sent(self) -> int:
        return sum(result.sent for result in self.results)

    @property
    def failed(self) -> List[SpamResult]:
        return [result for result in self.results if not result.ok]

    def raise_for_error(self) -> None:
        if self.first_error is not None:
            raise self.first_error


Spam = Callable[[SpamConfig, Account, WorkerRandomness, SpamResult], None]
TxBuilder = Callable[[SpamConfig, Account, WorkerRandomness, int, int], Transaction]


def chain_id_or_default(client: INodeClient) -> int:
    try:
        return client.chain_id()
    except NodeConnectionError as e:
        logger.warning("Could not get chain id, using %#x: %s", core_config.DEFAULT_CHAIN_ID, e)
        return core_config.DEFAULT_CHAIN_ID


def _build_basic_tx(config: SpamConfig, account: Account, randomness: WorkerRandomness,
                    nonce: int, chain_id: int) -> Transaction:
    return random_valid_tx(
        config.client, randomness.filler, account.address, nonce,
        chain_id=chain_id,
        access_list=config.access_list,
        rng=randomness.rng,
        generator=config.generator,
        gas_limit=config.gas_limit,
    )


def _build_blob_tx(config: SpamConfig, account: Account, randomness: WorkerRandomness,
                   nonce: int, chain_id: int) -> Transaction:
    return random_blob_tx(
        config.client, randomness.filler, account.address, nonce,
        chain_id=chain_id,
        access_list=config.access_list,
        rng=randomness.rng,
        generator=config.generator,
        gas_limit=config.gas_limit,
    )


def _send_transactions(config: SpamConfig, account: Account, randomness: WorkerRandomness,
                       result: SpamResult, build_tx: TxBuilder) -> None:
    client = config.client
    chain_id = chain_id_or_default(client)
    last_hash = None
    nonce: Optional[int] = None

    for _ in range(config.n):
        if nonce is None or not config.cache_nonces:
            nonce = client.nonce_at(account.address, "pending")
        tx = build_tx(config, account, randomness, nonce, chain_id)
        signed_tx = config.signer.sign(tx, chain_id, account)
        last_hash = client.send_raw_transaction(signed_tx)
        result.sent += 1
        nonce += 1
        time.sleep(config.inter_tx_delay)

    if last_hash is None:
        return
    try:
        client.wait_mined(last_hash, config.tx_timeout)
    except ConfirmationTimeout as e:
        logger.warning("Account %s: last transaction %s not mined: %s", account.address, last_hash, e)


def send_basic_transactions(config: SpamConfig, account: Account, randomness: WorkerRandomness,
                            result: SpamResult) -> None:
    """Sends config.n random fee-market transactions from `account`."""
    _send_transactions(config, account, randomness, result, _build_basic_tx)


def send_blob_transactions(config: SpamConfig, account: Account, randomness: WorkerRandomness,
                           result: SpamResult) -> None:
    """Sends config.n random blob transactions from `account`."""
    _send_transactions(config, account, randomness, result, _build_blob_tx)


def _run_worker(spam_fn: Spam, config: SpamConfig, account: Account,
                randomness: WorkerRandomness, result: SpamResult) -> SpamResult:
    try:
        spam_fn(config, account, randomness, result)
    except Exception as e:
        logger.error("Worker for %s stopped after %d transactions: %s", account.address, result.sent, e)
        result.error = e
    return result


def spam_transactions(config: SpamConfig, spam_fn: Spam = send_basic_transactions) -> SpamOutcome:
    """
    Runs one spam round: a worker per account, each sending config.n
    transactions, and blocks until every worker has finished.

    Args:
        config: The run configuration shared read-only by all workers.
        spam_fn: Worker body, send_basic_transactions or send_blob_transactions.

    Returns:
        A SpamOutcome with one SpamResult per account in pool order and the
        first error observed, in completion order, across all workers.
    """
    accounts = list(config.accounts)
    logger.info("Spamming %d transactions per account from %d accounts (seed %d)",
                config.n, len(accounts), config.seed)

    # Every worker's randomness is drawn before any worker starts.
    randomness: Dict[int, WorkerRandomness] = {
        account.index: prepare_worker_randomness(config.seed, account.index, config.corpus)
        for account in accounts
    }
    results = [SpamResult(index=account.index, address=account.address) for account in accounts]
    outcome = SpamOutcome(results=results)

    with ThreadPoolExecutor(max_workers=len(accounts), thread_name_prefix="spam") as executor:
        futures = [
            executor.submit(_run_worker, spam_fn, config, account, randomness[account.index], result)
            for account, result in zip(accounts, results)
        ]
        for future in as_completed(futures):
            result = future.result()
            if result.error is not None and outcome.first_error is None:
                outcome.first_error = result.error

    logger.info("Spam round finished: %d transactions sent, %d workers failed",
                outcome.total_sent, len(outcome.failed))
    return outcome
