from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class GasOracleSource(str, Enum):
    ETHERSCAN = "etherscan"
    ALLOY = "alloy"  # direct node JSON-RPC


@dataclass(frozen=True)
class GasEstimate:
    """Low/average/high gas price in gwei from a single oracle."""

    low: Decimal
    average: Decimal
    high: Decimal
    timestamp: datetime
    provider: GasOracleSource

    def __post_init__(self):
        if not (self.low <= self.average <= self.high):
            raise ValueError(
                f"Gas estimate from {self.provider.value} is not monotonic: "
                f"low={self.low}, average={self.average}, high={self.high}"
            )
