"""
Sends fixed-bytecode transactions that poke at fork-specific EVM rules.

Commands:
    shanghai  PUSH0 and COINBASE snippets, then initcode size limits around 2 * 24576
    eip4399   stores PREVRANDAO
    london    CREATE and CREATE2 of a contract whose code starts with 0xEF

Each program is sent from the faucet as one contract-creation transaction
(value 1 wei, gas 500 000) at the faucet's pending nonce. A rejected
submission is logged and the next program is still sent.

To run: python -m scenarios.fork_checks_scenario shanghai --rpc http://127.0.0.1:8545
"""
import argparse
import logging
import os
import sys
from typing import Callable, Dict, List, Optional

from dotenv import load_dotenv

from eth_txfuzz_core import config as core_config
from eth_txfuzz_core.accounts import Account
from eth_txfuzz_core.clients.base_client import INodeClient
from eth_txfuzz_core.clients.web3_client import Web3NodeClient
from eth_txfuzz_core.errors import ConfigError, SubmissionError, TxFuzzError
from eth_txfuzz_core.fees import get_caps
from eth_txfuzz_core.log_utils import configure_logging
from eth_txfuzz_core.signer import Signer
from eth_txfuzz_core.tx import Transaction

logger = logging.getLogger(__name__)

# Opcodes
STOP = 0x00
BALANCE = 0x31
EXTCODESIZE = 0x3b
EXTCODECOPY = 0x3c
EXTCODEHASH = 0x3f
COINBASE = 0x41
PREVRANDAO = 0x44
POP = 0x50
MSTORE8 = 0x53
SSTORE = 0x55
JUMP = 0x56
GAS = 0x5a
JUMPDEST = 0x5b
PUSH0 = 0x5f
PUSH1 = 0x60
PUSH4 = 0x63
CREATE = 0xf0
CALL = 0xf1
CALLCODE = 0xf2
RETURN = 0xf3
DELEGATECALL = 0xf4
CREATE2 = 0xf5
STATICCALL = 0xfa
SELFDESTRUCT = 0xff


def initcode_sizes(max_initcode_size: int = core_config.MAX_INITCODE_SIZE) -> List[int]:
    """Sizes just below, at and above the initcode limit, plus twice the limit."""
    return [
        max_initcode_size - 2,
        max_initcode_size - 1,
        max_initcode_size,
        max_initcode_size + 1,
        max_initcode_size + 2,
        max_initcode_size * 2,
    ]


def push_size(size: int) -> bytes:
    return bytes([PUSH4]) + size.to_bytes(4, 'big')


def shanghai_programs() -> List[bytes]:
    programs = [
        bytes([COINBASE, COINBASE, SSTORE]),
        # 5x PUSH0, COINBASE, GAS, <call op>
        *(bytes([PUSH0] * 5 + [COINBASE, GAS, op]) for op in (CALL, CALLCODE, DELEGATECALL, STATICCALL)),
        bytes([COINBASE, SELFDESTRUCT]),
        bytes([COINBASE, EXTCODESIZE]),
        bytes([PUSH0, PUSH0, PUSH0, COINBASE, EXTCODECOPY]),
        bytes([COINBASE, EXTCODEHASH]),
        bytes([COINBASE, BALANCE]),
        bytes([JUMPDEST, PUSH0, JUMP]), # endless PUSH0 loop
    ]
    sizes = initcode_sizes()
    programs += [bytes([JUMPDEST]) * size + bytes([STOP]) for size in sizes]
    programs += [bytes([STOP]) * size for size in sizes]
    # CREATE(value=0, offset=0, size) over zeroed memory
    programs += [push_size(size) + bytes([PUSH0, PUSH0, CREATE]) for size in sizes]
    # CREATE2(value=0, offset=0, size, salt=0)
    programs += [bytes([PUSH0]) + push_size(size) + bytes([PUSH0, PUSH0, CREATE2]) for size in sizes]
    return programs


def eip4399_programs() -> List[bytes]:
    return [bytes([PREVRANDAO, PREVRANDAO, SSTORE])]


def _store_in_memory(code: bytes) -> bytes:
    program = bytearray()
    for offset, value in enumerate(code):
        program += bytes([PUSH1, value, PUSH1, offset, MSTORE8])
    return bytes(program)


def ef_initcode() -> bytes:
    """Init code returning the single byte 0xEF as the deployed code."""
    return _store_in_memory(b"\xef") + bytes([PUSH1, 1, PUSH1, 0, RETURN])


def ef_byte_program() -> bytes:
    """
    Deploys `ef_initcode` once with CREATE and once with CREATE2 (salt 0).
    Both deployments must fail on a chain that rejects code starting with 0xEF.
    """
    initcode = ef_initcode()
    size = len(initcode)
    program = bytearray(_store_in_memory(initcode))
    program += bytes([PUSH1, size, PUSH1, 0, PUSH1, 0, CREATE, POP])
    program += bytes([PUSH1, 0, PUSH1, size, PUSH1, 0, PUSH1, 0, CREATE2, POP])
    return bytes(program)


def london_programs() -> List[bytes]:
    return [ef_byte_program()]


FORK_CHECKS: Dict[str, Callable[[], List[bytes]]] = {
    'shanghai': shanghai_programs,
    'eip4399': eip4399_programs,
    'london': london_programs,
}


def send_program(client: INodeClient, signer: Signer, account: Account, data: bytes) -> str:
    """Signs and submits `data` as a contract-creation transaction from `account`."""
    nonce = client.nonce_at(account.address, "pending")
    chain_id = client.chain_id()
    tip, fee_cap = get_caps(client, core_config.FORK_CHECK_DEFAULT_FEE_CAP)
    logger.info("Nonce: %d", nonce)
    tx = Transaction(
        chain_id=chain_id,
        nonce=nonce,
        max_priority_fee_per_gas=tip,
        max_fee_per_gas=fee_cap,
        gas=core_config.FORK_CHECK_GAS_LIMIT,
        to=None,
        value=core_config.FORK_CHECK_VALUE,
        data=data,
        access_list=[],
    )
    return client.send_raw_transaction(signer.sign(tx, chain_id, account))


def run_fork_check(client: INodeClient, signer: Signer, account: Account,
                   programs: List[bytes]) -> List[Optional[str]]:
    """
    Sends every program in order.

    :return: One entry per program, the transaction hash or None when the
             node rejected the submission.
    """
    tx_hashes: List[Optional[str]] = []
    for index, data in enumerate(programs):
        try:
            tx_hashes.append(send_program(client, signer, account, data))
        except SubmissionError as e:
            logger.warning("Program %d (%d bytes) rejected: %s", index, len(data), e)
            tx_hashes.append(None)
    return tx_hashes


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--rpc', type=str, default=core_config.DEFAULT_TARGET_URL, help='RPC URL of the node under test')
    common.add_argument('--poa', action='store_true', help='Inject the POA extra-data middleware')
    common.add_argument('--sk', type=str, default=None,
                        help=f'Sender private key (defaults to ${core_config.FAUCET_KEY_ENV_VAR})')
    common.add_argument('--log-level', type=str, default=core_config.LOG_LEVEL, help='Logging level')

    parser = argparse.ArgumentParser(description='Send fixed-bytecode fork check transactions.')
    subparsers = parser.add_subparsers(dest='command', required=True)
    for name in FORK_CHECKS:
        subparsers.add_parser(name, parents=[common], help=f'Run the {name} checks')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        private_key = args.sk or os.getenv(core_config.FAUCET_KEY_ENV_VAR)
        if not private_key:
            raise ConfigError(f"No sender key configured (set {core_config.FAUCET_KEY_ENV_VAR})")
        account = Account.from_key(private_key)
        client = Web3NodeClient(rpc_url=args.rpc, poa=args.poa)
        programs = FORK_CHECKS[args.command]()
        print(f"--- Sending {len(programs)} {args.command} programs from {account.address} ---")
        tx_hashes = run_fork_check(client, Signer(), account, programs)
    except TxFuzzError as e:
        logger.critical("%s failed: %s", args.command, e)
        return 1
    rejected = sum(1 for tx_hash in tx_hashes if tx_hash is None)
    print(f"--- Sent {len(tx_hashes) - rejected}, rejected {rejected} ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())
