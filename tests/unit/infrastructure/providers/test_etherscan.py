from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from domain.exceptions.provider import (
    ConfigurationError,
    MalformedResponse,
    ProviderErrorKind,
    UpstreamRejected,
)
from domain.models.gas import GasOracleSource
from infrastructure.providers.etherscan import EtherscanGasOracle


def make_client(payload: dict) -> AsyncMock:
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_response = Mock()
    mock_response.json.return_value = payload
    mock_response.raise_for_status = Mock()
    mock_client.get.return_value = mock_response
    return mock_client


def gas_oracle_payload(safe: str, propose: str, fast: str) -> dict:
    return {
        'status': '1',
        'message': 'OK',
        'result': {
            'LastBlock': '23266424',
            'SafeGasPrice': safe,
            'ProposeGasPrice': propose,
            'FastGasPrice': fast,
            'suggestBaseFee': '0.41',
            'gasUsedRatio': '0.5,0.4',
        },
    }


@pytest.mark.asyncio
async def test_get_gas_price_success_keeps_fractional_gwei():
    mock_client = make_client(gas_oracle_payload('0.512', '0.533', '0.61'))
    oracle = EtherscanGasOracle(api_key='test_key', client=mock_client)

    estimate = await oracle.get_gas_price()

    assert estimate.low == Decimal('0.512')
    assert estimate.average == Decimal('0.533')
    assert estimate.high == Decimal('0.61')
    assert estimate.provider is GasOracleSource.ETHERSCAN

    call_args = mock_client.get.call_args
    assert call_args[0][0] == 'https://api.etherscan.io/v2/api'
    assert call_args[1]['params'] == {
        'chainid': 1,
        'module': 'gastracker',
        'action': 'gasoracle',
        'apikey': 'test_key',
    }


@pytest.mark.asyncio
async def test_get_gas_price_clamps_non_monotonic_values_upward():
    mock_client = make_client(gas_oracle_payload('3', '2', '5'))
    oracle = EtherscanGasOracle(api_key='test_key', client=mock_client)

    estimate = await oracle.get_gas_price()

    assert (estimate.low, estimate.average, estimate.high) == (Decimal('3'), Decimal('3'), Decimal('5'))


@pytest.mark.asyncio
async def test_get_gas_price_rate_limited():
    mock_client = make_client({'status': '0', 'message': 'NOTOK', 'result': 'Max rate limit reached'})
    oracle = EtherscanGasOracle(api_key='test_key', client=mock_client)

    with pytest.raises(UpstreamRejected) as exc_info:
        await oracle.get_gas_price()

    assert exc_info.value.kind is ProviderErrorKind.RATE_LIMITED
    assert 'Max rate limit reached' in str(exc_info.value)


@pytest.mark.asyncio
async def test_get_gas_price_invalid_api_key():
    mock_client = make_client({'status': '0', 'message': 'NOTOK', 'result': 'Invalid API Key'})
    oracle = EtherscanGasOracle(api_key='bad_key', client=mock_client)

    with pytest.raises(UpstreamRejected) as exc_info:
        await oracle.get_gas_price()

    assert exc_info.value.kind is ProviderErrorKind.UNAUTHORIZED


@pytest.mark.asyncio
async def test_get_gas_price_missing_field():
    payload = gas_oracle_payload('1', '2', '3')
    del payload['result']['FastGasPrice']
    oracle = EtherscanGasOracle(api_key='test_key', client=make_client(payload))

    with pytest.raises(MalformedResponse) as exc_info:
        await oracle.get_gas_price()

    assert 'FastGasPrice' in str(exc_info.value)


@pytest.mark.asyncio
async def test_get_gas_price_non_numeric_value():
    oracle = EtherscanGasOracle(api_key='test_key', client=make_client(gas_oracle_payload('1', 'abc', '3')))

    with pytest.raises(MalformedResponse):
        await oracle.get_gas_price()


def test_missing_api_key_is_configuration_error():
    with pytest.raises(ConfigurationError):
        EtherscanGasOracle(api_key='', client=AsyncMock(spec=httpx.AsyncClient))
