import asyncio
import logging
from datetime import UTC, datetime
from decimal import Decimal
from statistics import median_low

import httpx

from domain.exceptions.provider import (
    ConfigurationError,
    MalformedResponse,
    ProviderErrorKind,
    UpstreamRejected,
)
from domain.models.gas import GasEstimate, GasOracleSource
from domain.normalization import clamp_monotonic, hex_to_int, wei_to_gwei
from infrastructure.providers.base import BaseAPIProvider, GasOracle

logger = logging.getLogger(__name__)

# JSON-RPC server errors that nodes and hosted endpoints use for throttling
RATE_LIMIT_CODES = {-32005, 429}


class NodeRPCGasOracle(BaseAPIProvider, GasOracle):
    """
    EIP-1559 gas estimate computed from an Ethereum node over JSON-RPC.

    The latest block supplies the base fee and its age; the fee history of the
    last FEE_HISTORY_BLOCKS blocks supplies priority-fee samples at the 25th,
    50th and 75th percentiles. Each tier is `base fee + median priority fee`,
    with a per-tier floor so an idle chain still produces a usable tip.
    """

    FEE_HISTORY_BLOCKS = 20
    REWARD_PERCENTILES = [25, 50, 75]
    PRIORITY_FLOORS_GWEI = (Decimal(1), Decimal(2), Decimal(3))

    def __init__(
        self,
        rpc_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10,
        max_attempts: int = 2,
        max_block_age: int = 120,
    ):
        if not rpc_url:
            raise ConfigurationError("ETHEREUM_RPC_URL is required for the alloy gas provider")
        if httpx.URL(rpc_url).scheme not in ("http", "https"):
            raise ConfigurationError(f"ETHEREUM_RPC_URL must be an http(s) URL, got '{rpc_url}'")
        self.rpc_url = rpc_url
        self.max_block_age = max_block_age
        super().__init__(client or httpx.AsyncClient(timeout=timeout), max_attempts)

    @property
    def name(self) -> GasOracleSource:
        return GasOracleSource.ALLOY

    async def get_gas_price(self) -> GasEstimate:
        outcomes = await asyncio.gather(
            self._call(1, "eth_getBlockByNumber", ["latest", False]),
            self._call(2, "eth_feeHistory", [hex(self.FEE_HISTORY_BLOCKS), "latest", self.REWARD_PERCENTILES]),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        block, fee_history = outcomes

        base_fee = self._read_base_fee(block)
        priority_fees = self._read_priority_fees(fee_history)
        low, average, high = clamp_monotonic(*(base_fee + fee for fee in priority_fees))

        logger.debug(f"Node gas estimate: base fee {base_fee} gwei, priority {priority_fees}")
        return GasEstimate(
            low=low,
            average=average,
            high=high,
            timestamp=datetime.now(UTC),
            provider=self.name,
        )

    async def _call(self, request_id: int, method: str, params: list):
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        data = await self._request("POST", self.rpc_url, json=payload)

        if not isinstance(data, dict):
            raise MalformedResponse(self.provider_id, f"{method} response is not a JSON-RPC object")
        error = data.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
            kind = ProviderErrorKind.RATE_LIMITED if code in RATE_LIMIT_CODES else None
            raise UpstreamRejected(self.provider_id, f"{method} failed ({code}): {message}", kind)
        if data.get("result") is None:
            raise MalformedResponse(self.provider_id, f"{method} returned no result")
        return data["result"]

    def _read_base_fee(self, block) -> Decimal:
        if not isinstance(block, dict):
            raise MalformedResponse(self.provider_id, "Latest block is not an object")
        try:
            base_fee_wei = hex_to_int(block["baseFeePerGas"])
            block_time = hex_to_int(block["timestamp"])
        except KeyError as e:
            raise MalformedResponse(self.provider_id, f"Latest block has no {e.args[0]}") from e
        except ValueError as e:
            raise MalformedResponse(self.provider_id, f"Invalid block field: {e}") from e

        age = datetime.now(UTC).timestamp() - block_time
        if age > self.max_block_age:
            raise MalformedResponse(
                self.provider_id,
                f"Latest block is {int(age)}s old (limit {self.max_block_age}s)",
                ProviderErrorKind.STALE_DATA,
            )
        return wei_to_gwei(base_fee_wei)

    def _read_priority_fees(self, fee_history) -> tuple[Decimal, ...]:
        if not isinstance(fee_history, dict):
            raise MalformedResponse(self.provider_id, "Fee history is not an object")
        rewards = fee_history.get("reward") or []

        fees = []
        for column, floor in enumerate(self.PRIORITY_FLOORS_GWEI):
            try:
                samples = [hex_to_int(row[column]) for row in rewards if len(row) > column]
            except (TypeError, ValueError) as e:
                raise MalformedResponse(self.provider_id, f"Invalid reward sample: {e}") from e
            fee = wei_to_gwei(median_low(samples)) if samples else floor
            fees.append(max(fee, floor))
        return tuple(fees)
