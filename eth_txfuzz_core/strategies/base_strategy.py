import enum
import random
from typing import Callable, Dict, List

from ..tx import Transaction, TxConf

TxCreationStrategy = Callable[[TxConf], Transaction]


class TxShape(enum.Enum):
    """The closed set of transaction shapes the spammer can produce."""
    CONTRACT_CREATION = "contract_creation"
    TRANSFER = "transfer"
    FULL_AL_CONTRACT_CREATION = "full_al_contract_creation"
    FULL_AL_TRANSFER = "full_al_transfer"

    @property
    def uses_access_list(self) -> bool:
        return self in (TxShape.FULL_AL_CONTRACT_CREATION, TxShape.FULL_AL_TRANSFER)


class StrategyRegistry:
    """
    Maps every TxShape to the strategy that builds it. The access-list set
    extends the no-access-list set, never the reverse.
    """
    def __init__(self, strategies: Dict[TxShape, TxCreationStrategy]):
        missing = [shape.name for shape in TxShape if shape not in strategies]
        if missing:
            raise ValueError(f"StrategyRegistry is missing strategies for: {', '.join(missing)}")
        self._strategies: Dict[TxShape, TxCreationStrategy] = dict(strategies)

    @property
    def no_al_shapes(self) -> List[TxShape]:
        return [shape for shape in TxShape if not shape.uses_access_list]

    @property
    def al_shapes(self) -> List[TxShape]:
        return self.no_al_shapes + [shape for shape in TxShape if shape.uses_access_list]

    def shapes_for(self, access_list: bool) -> List[TxShape]:
        return self.al_shapes if access_list else self.no_al_shapes

    def select(self, access_list: bool, rng: random.Random) -> TxShape:
        """Uniformly samples a shape from the applicable set."""
        return rng.choice(self.shapes_for(access_list))

    def build(self, shape: TxShape, conf: TxConf) -> Transaction:
        return self._strategies[shape](conf)
