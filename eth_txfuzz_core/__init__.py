# eth_txfuzz_core/__init__.py

# Key classes and functions are exposed here for users of the library.
# Scenarios import directly from the modules.
from .accounts import Account, AccountPool, create_accounts
from .errors import ConfigError, ConfirmationTimeout, NodeConnectionError, SubmissionError, TxFuzzError
from .spam_config import SpamConfig
from .spam_engine import SpamOutcome, SpamResult, send_basic_transactions, send_blob_transactions, spam_transactions
from .recovery import airdrop, unstuck
