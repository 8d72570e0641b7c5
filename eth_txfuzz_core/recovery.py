"""
Funding and nonce recovery for the account pool, run before every spam round.
"""
import logging
import time
from typing import List, Optional

from . import config as core_config
from .accounts import Account
from .errors import ConfirmationTimeout
from .fees import get_caps
from .spam_config import SpamConfig
from .spam_engine import chain_id_or_default
from .tx import Transaction

logger = logging.getLogger(__name__)


def _transfer(chain_id: int, nonce: int, to: str, value: int, tip: int, fee_cap: int) -> Transaction:
    return Transaction(
        chain_id=chain_id,
        nonce=nonce,
        max_priority_fee_per_gas=min(tip, fee_cap),
        max_fee_per_gas=fee_cap,
        gas=core_config.TRANSFER_GAS_LIMIT,
        to=to,
        value=value,
        data=b"",
        access_list=[],
    )


def airdrop(config: SpamConfig, value: int) -> Optional[str]:
    """
    Sends `value` wei from the faucet to every pool account, one transfer
    after another. The faucet nonce is read once and incremented locally.
    Stops and propagates on the first failure.

    :param config: Run configuration; must carry a faucet account.
    :param value: Amount in wei sent to each account.
    :return: The hash of the last transfer, or None if nothing was sent.
    """
    faucet = config.require_faucet()
    client = config.client
    chain_id = chain_id_or_default(client)
    tip, fee_cap = get_caps(client, core_config.FALLBACK_FEE_CAP)
    nonce = client.nonce_at(faucet.address, "pending")
    logger.info("Airdropping %d wei to %d accounts from %s", value, len(config.accounts), faucet.address)

    last_hash = None
    for account in config.accounts:
        if account.address == faucet.address:
            continue
        tx = _transfer(chain_id, nonce, account.address, value, tip, fee_cap)
        signed_tx = config.signer.sign(tx, chain_id, faucet)
        last_hash = client.send_raw_transaction(signed_tx)
        logger.debug("Airdrop to %s with nonce %d: %s", account.address, nonce, last_hash)
        nonce += 1
        time.sleep(config.inter_tx_delay)

    if last_hash is not None:
        try:
            client.wait_mined(last_hash, config.tx_timeout)
        except ConfirmationTimeout as e:
            logger.warning("Last airdrop transfer %s not mined: %s", last_hash, e)
    return last_hash


def unstick_account(config: SpamConfig, account: Account, chain_id: int) -> bool:
    """
    Replaces the transactions stuck in the pool for `account`, if any, with a
    zero-value self-transfer at the latest confirmed nonce and waits for it
    to be mined. Raises ConfirmationTimeout if it is not mined in time.
    """
    client = config.client
    latest = client.nonce_at(account.address, "latest")
    pending = client.nonce_at(account.address, "pending")
    if pending <= latest:
        return False

    logger.info("Account %s is stuck: latest nonce %d, pending nonce %d", account.address, latest, pending)
    tip, fee_cap = get_caps(client, core_config.FALLBACK_FEE_CAP)
    tip *= core_config.UNSTUCK_FEE_MULTIPLIER
    fee_cap *= core_config.UNSTUCK_FEE_MULTIPLIER
    tx = _transfer(chain_id, latest, account.address, 0, tip, fee_cap)
    signed_tx = config.signer.sign(tx, chain_id, account)
    tx_hash = client.send_raw_transaction(signed_tx)
    client.wait_mined(tx_hash, config.tx_timeout)
    logger.info("Account %s unstuck with %s", account.address, tx_hash)
    return True


def unstuck(config: SpamConfig) -> List[str]:
    """Unsticks every pool account and returns the addresses that needed it."""
    chain_id = chain_id_or_default(config.client)
    unstuck_addresses = []
    for account in config.accounts:
        if unstick_account(config, account, chain_id):
            unstuck_addresses.append(account.address)
    return unstuck_addresses
