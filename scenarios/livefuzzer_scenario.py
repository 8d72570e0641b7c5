"""
Command-line driver for the spam engine.

Commands:
    airdrop  fund every pool account from the faucet
    spam     loop {unstuck, airdrop, spam fee-market transactions, sleep}
    blobs    like spam, with blob transactions
    unstuck  replace transactions stuck in the pool
    create   generate fresh accounts into a key CSV file

The faucet key is read from --sk or from the FAUCET_PRIVATE_KEY environment
variable (a .env file in the working directory is honoured).

To run: python -m scenarios.livefuzzer_scenario spam --rpc http://127.0.0.1:8545
"""
import argparse
import logging
import os
import sys
import time
from typing import List, Optional

from dotenv import load_dotenv

from eth_txfuzz_core import config as core_config
from eth_txfuzz_core.accounts import AccountPool, create_accounts
from eth_txfuzz_core.clients.web3_client import Web3NodeClient
from eth_txfuzz_core.errors import TxFuzzError
from eth_txfuzz_core.log_utils import configure_logging
from eth_txfuzz_core.recovery import airdrop, unstuck
from eth_txfuzz_core.spam_config import SpamConfig
from eth_txfuzz_core.spam_engine import Spam, send_basic_transactions, send_blob_transactions, spam_transactions

logger = logging.getLogger(__name__)


def run_spam_loop(config: SpamConfig, spam_fn: Spam, airdrop_value: int,
                  rounds: Optional[int] = None,
                  backoff_seconds: float = core_config.SPAM_LOOP_BACKOFF_SECONDS) -> int:
    """
    Repeats {unstuck, airdrop, spam round, backoff}.
    Runs forever unless `rounds` is given. A failed airdrop ends the loop;
    a failed spam round is logged and the loop continues.

    :return: Number of spam rounds that completed.
    """
    completed = 0
    while rounds is None or completed < rounds:
        try:
            unstuck_accounts = unstuck(config)
            if unstuck_accounts:
                logger.info("Unstuck %d accounts", len(unstuck_accounts))
        except TxFuzzError as e:
            logger.error("Unstuck failed, continuing: %s", e)
        airdrop(config, airdrop_value)
        outcome = spam_transactions(config, spam_fn)
        if not outcome.ok:
            logger.error("Spam round %d failed for %d accounts: %s",
                         completed + 1, len(outcome.failed), outcome.first_error)
        completed += 1
        if rounds is None or completed < rounds:
            time.sleep(backoff_seconds)
    return completed


def build_config(args: argparse.Namespace) -> SpamConfig:
    client = Web3NodeClient(rpc_url=args.rpc, poa=args.poa)
    pool = AccountPool.from_key_files(args.keys)
    return SpamConfig.from_options(
        client=client,
        accounts=pool,
        faucet_key=args.sk or os.getenv(core_config.FAUCET_KEY_ENV_VAR),
        account_count=args.accounts,
        tx_per_account=args.txcount,
        access_list=not args.no_al,
        gas_limit=args.gas_limit,
        seed=args.seed,
        corpus_path=args.corpus,
        cache_nonces=args.cache_nonces,
    )


def _run_airdrop(args: argparse.Namespace) -> int:
    config = build_config(args)
    value = config.n * core_config.AIRDROP_GWEI_PER_TX * core_config.GWEI
    airdrop(config, value)
    return 0


def _run_spam(args: argparse.Namespace, spam_fn: Spam) -> int:
    config = build_config(args)
    print(f"--- Starting spam against {args.rpc} ---")
    print(config)
    airdrop_value = (1 + config.n) * core_config.SPAM_AIRDROP_GWEI_PER_TX * core_config.GWEI
    completed = run_spam_loop(config, spam_fn, airdrop_value, rounds=args.rounds)
    print(f"--- Spam finished after {completed} rounds ---")
    return 0


def _run_unstuck(args: argparse.Namespace) -> int:
    config = build_config(args)
    unstuck_accounts = unstuck(config)
    print(f"Unstuck {len(unstuck_accounts)} accounts")
    for address in unstuck_accounts:
        print(f"  {address}")
    return 0


def _run_create(args: argparse.Namespace) -> int:
    accounts = create_accounts(args.count, args.output)
    for account in accounts:
        print(account.address)
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--rpc', type=str, default=core_config.DEFAULT_TARGET_URL, help='RPC URL of the node under test')
    common.add_argument('--poa', action='store_true', help='Inject the POA extra-data middleware')
    common.add_argument('--keys', nargs='+', default=[core_config.DEFAULT_KEY_FILE_PRIMARY],
                        help='CSV key files with pub_key and priv_key columns')
    common.add_argument('--sk', type=str, default=None,
                        help=f'Faucet private key (defaults to ${core_config.FAUCET_KEY_ENV_VAR})')
    common.add_argument('--accounts', type=int, default=0, help='Number of pool accounts to use (0 = all)')
    common.add_argument('--txcount', type=int, default=core_config.DEFAULT_TX_PER_ACCOUNT,
                        help='Transactions per account and round (0 = derive from block gas limit)')
    common.add_argument('--seed', type=int, default=0, help='Run seed (0 = random)')
    common.add_argument('--corpus', type=str, default=None, help='Directory of corpus files')
    common.add_argument('--no-al', action='store_true', help='Never attach access lists')
    common.add_argument('--gas-limit', type=int, default=core_config.DEFAULT_TX_GAS_LIMIT,
                        help='Gas limit of each fuzzed transaction')
    common.add_argument('--cache-nonces', action='store_true',
                        help='Fetch each account nonce once per round instead of before every transaction')
    common.add_argument('--log-level', type=str, default=core_config.LOG_LEVEL, help='Logging level')

    parser = argparse.ArgumentParser(description='Spam fuzzed transactions at a node.')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('airdrop', parents=[common], help='Airdrop to the pool accounts')
    for name, help_text in (('spam', 'Send spam transactions'), ('blobs', 'Send blob spam transactions')):
        spam_parser = subparsers.add_parser(name, parents=[common], help=help_text)
        spam_parser.add_argument('--rounds', type=int, default=None, help='Stop after this many rounds')
    subparsers.add_parser('unstuck', parents=[common], help='Unstuck the pool accounts')
    create_parser = subparsers.add_parser('create', help='Create ephemeral accounts')
    create_parser.add_argument('--count', type=int, default=100, help='Number of accounts to create')
    create_parser.add_argument('--output', type=str, default=core_config.DEFAULT_KEY_FILE_PRIMARY,
                               help='Key CSV file to write')
    create_parser.add_argument('--log-level', type=str, default=core_config.LOG_LEVEL, help='Logging level')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        if args.command == 'airdrop':
            return _run_airdrop(args)
        if args.command == 'spam':
            return _run_spam(args, send_basic_transactions)
        if args.command == 'blobs':
            return _run_spam(args, send_blob_transactions)
        if args.command == 'unstuck':
            return _run_unstuck(args)
        return _run_create(args)
    except TxFuzzError as e:
        logger.critical("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
