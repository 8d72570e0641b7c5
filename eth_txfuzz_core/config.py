# eth_txfuzz_core/config.py
"""
Default configuration values for the eth-txfuzz spam engine.
These can be overridden by the driver or by a SpamConfig built for a run.
"""

# --- Client Communication ---
DEFAULT_TARGET_URL: str = "http://127.0.0.1:8545" # Default RPC endpoint of the node under test
DEFAULT_CHAIN_ID: int = 0x01000666               # Used when the node cannot report its chain id
DEFAULT_RPC_TIMEOUT_SECONDS: float = 10.0         # Per-request timeout for raw JSON-RPC calls

# --- Units ---
GWEI: int = 10**9

# --- Transaction Construction ---
DEFAULT_TX_GAS_LIMIT: int = 100_000   # Gas limit of every fuzzed transaction
TRANSFER_GAS_LIMIT: int = 21_000      # Gas limit for airdrop / unstuck transfers
MAX_CODE_BYTES: int = 128             # Generated payloads are truncated to this length
FALLBACK_FEE_CAP: int = 1             # Fee cap (wei) when the node cannot suggest one
FALLBACK_TIP_CAP: int = 1             # Tip cap (wei) when the node cannot suggest one
OFFLINE_TIP: int = 1 * GWEI           # Tip used by the offline fee derivation
FALLBACK_BLOB_FEE_CAP: int = 1 * GWEI # Blob fee cap when eth_blobBaseFee is unavailable
MAX_BLOBS_PER_TX: int = 2
BLOB_SIZE: int = 131072               # 4096 field elements * 32 bytes

# --- Mutation / Corpus ---
RANDOM_BUFFER_SIZE: int = 10_000      # Bytes of seeded randomness drawn per account and run

# --- Spam Scheduling ---
DEFAULT_TX_PER_ACCOUNT: int = 0       # 0 means "derive from the block gas limit"
INTER_TX_DELAY_SECONDS: float = 0.01  # Throttle between two submissions of one worker
TX_TIMEOUT_SECONDS: float = 300.0     # Bound on the final per-account confirmation wait
SPAM_LOOP_BACKOFF_SECONDS: float = 12.0

# --- Account Management ---
DEFAULT_KEY_FILE_PRIMARY: str = './keys.csv'   # CSV file with 'pub_key' and 'priv_key' columns
MAX_ACCOUNTS_TO_LOAD: int = 100                # Safety limit for the number of accounts to load
FAUCET_KEY_ENV_VAR: str = "FAUCET_PRIVATE_KEY"

# --- Recovery ---
UNSTUCK_FEE_MULTIPLIER: int = 10      # Replacement fees are this multiple of the suggested fees
SPAM_AIRDROP_GWEI_PER_TX: int = 1_000_000
AIRDROP_GWEI_PER_TX: int = 100_000

# --- Logging ---
LOG_LEVEL: str = "INFO"
LOG_TO_FILE: bool = False
LOG_FILE_PATH: str = "txfuzz.log"
LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# --- Fork Checks ---
FORK_CHECK_GAS_LIMIT: int = 500_000   # Gas limit of each fixed-bytecode fork check transaction
FORK_CHECK_VALUE: int = 1             # Wei sent with each fork check transaction
FORK_CHECK_DEFAULT_FEE_CAP: int = 30 * GWEI # Offline fee cap when the node cannot suggest fees
MAX_CODE_SIZE: int = 24576            # EIP-170 contract size limit
MAX_INITCODE_SIZE: int = 2 * MAX_CODE_SIZE
