"""
Fee-cap / tip-cap derivation for fee-market transactions.

Every pair returned here satisfies tip <= fee_cap, whether the values come
from the node or from the offline fallback.
"""
import logging
from typing import Optional, Tuple

from . import config as core_config
from .clients.base_client import INodeClient
from .errors import NodeConnectionError

logger = logging.getLogger(__name__)


def offline_caps(default_fee_cap: int) -> Tuple[int, int]:
    """
    Derives (tip, fee_cap) without a node: tip is 1 gwei and the fee cap is
    what remains of `default_fee_cap` when that remainder still covers the
    tip; otherwise the tip is dropped and the whole default is the fee cap.
    """
    tip = core_config.OFFLINE_TIP
    # Checking default >= tip alone would allow a fee cap below the tip.
    if default_fee_cap - tip >= tip:
        return tip, default_fee_cap - tip
    return 0, default_fee_cap


def get_caps(client: Optional[INodeClient], default_fee_cap: int) -> Tuple[int, int]:
    """Returns (tip, fee_cap) suggested by the node, or the offline derivation."""
    if client is None:
        return offline_caps(default_fee_cap)
    try:
        tip = client.suggest_tip_cap()
        fee_cap = client.suggest_fee_cap()
    except NodeConnectionError as e:
        logger.warning("Fee suggestion failed, using offline fee derivation: %s", e)
        return offline_caps(default_fee_cap)
    return min(tip, fee_cap), fee_cap
