"""
Exception types raised by the spam engine.
"""


class TxFuzzError(Exception):
    """Base class for all errors raised by eth_txfuzz_core."""


class NodeConnectionError(TxFuzzError, ConnectionError):
    """The node could not be reached or an RPC call failed."""


class SubmissionError(NodeConnectionError):
    """The node refused a signed raw transaction."""


class ConfigError(TxFuzzError, ValueError):
    """The run configuration is unusable (e.g. empty account pool)."""


class ConfirmationTimeout(TxFuzzError, TimeoutError):
    """A transaction was not mined within the allowed time."""
