from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_price_service
from api.main import app
from domain.exceptions.provider import (
    AggregateFailure,
    InvalidInputError,
    ProviderErrorKind,
    UpstreamRejected,
    UpstreamUnavailable,
)
from domain.models.crypto import Coin, Currency, PriceProviderSource, Quote


def make_quote(provider: PriceProviderSource, currency: Currency, price: str, amount: str = '1') -> Quote:
    quote = Quote(
        coin=Coin.ETH,
        currency=currency,
        price=Decimal(price),
        provider=provider,
        timestamp=datetime(2025, 9, 1, 12, 0, tzinfo=UTC),
    )
    return quote.with_amount(Decimal(amount))


@pytest.fixture
def mock_price_service():
    mock_service = MagicMock()
    mock_service.get_quotes_for_amount = AsyncMock(
        return_value=[
            make_quote(PriceProviderSource.COINMARKETCAP, Currency.USD, '4164.82', '2'),
            make_quote(PriceProviderSource.COINGECKO, Currency.USD, '4160.00', '2'),
        ]
    )
    return mock_service


@pytest.fixture
def client(mock_price_service):
    app.dependency_overrides[get_price_service] = lambda: mock_price_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def test_prices_success(client, mock_price_service):
    response = client.get('/api/v1/price/prices', params={'amount': '2', 'currency': 'USD'})

    assert response.status_code == 200
    data = response.json()

    assert [q['provider'] for q in data] == ['coinmarketcap', 'coingecko']
    assert data[0]['coin'] == 'ETH'
    assert data[0]['currency'] == 'USD'
    assert data[0]['currency_symbol'] == '$'
    assert Decimal(data[0]['price']) == Decimal('4164.82')
    assert Decimal(data[0]['quote_per_amount']['amount']) == Decimal('2')
    assert Decimal(data[0]['quote_per_amount']['total_price']) == Decimal('8329.64')
    assert 'timestamp' in data[0]

    mock_price_service.get_quotes_for_amount.assert_awaited_once_with(Coin.ETH, Currency.USD, Decimal('2'))


def test_prices_decimals_serialized_as_strings(client):
    response = client.get('/api/v1/price/prices')

    assert response.status_code == 200
    assert response.json()[0]['price'] == '4164.82'


def test_prices_defaults_to_one_usd(client, mock_price_service):
    client.get('/api/v1/price/prices')

    mock_price_service.get_quotes_for_amount.assert_awaited_once_with(Coin.ETH, Currency.USD, Decimal(1))


def test_prices_lowercase_currency_normalized(client, mock_price_service):
    response = client.get('/api/v1/price/prices', params={'currency': 'eur'})

    assert response.status_code == 200
    mock_price_service.get_quotes_for_amount.assert_awaited_once_with(Coin.ETH, Currency.EUR, Decimal(1))


@pytest.mark.parametrize('currency', ['XYZ', 'US', 'USDT'])
def test_prices_unsupported_currency(client, mock_price_service, currency):
    response = client.get('/api/v1/price/prices', params={'currency': currency})

    assert response.status_code == 400
    assert currency in response.json()['detail']
    mock_price_service.get_quotes_for_amount.assert_not_called()


@pytest.mark.parametrize('amount', ['0', '-3', 'abc'])
def test_prices_invalid_amount(client, mock_price_service, amount):
    response = client.get('/api/v1/price/prices', params={'amount': amount})

    assert response.status_code == 422
    mock_price_service.get_quotes_for_amount.assert_not_called()


def test_prices_service_invalid_input(client, mock_price_service):
    mock_price_service.get_quotes_for_amount.side_effect = InvalidInputError('Amount must be greater than zero')

    response = client.get('/api/v1/price/prices')

    assert response.status_code == 400


def test_prices_all_providers_failed(client, mock_price_service):
    mock_price_service.get_quotes_for_amount.side_effect = AggregateFailure([
        UpstreamRejected('coinmarketcap', 'HTTP error 401: bad key', ProviderErrorKind.UNAUTHORIZED),
        UpstreamUnavailable('coingecko', 'No response within 5.0s', ProviderErrorKind.TIMEOUT),
    ])

    response = client.get('/api/v1/price/prices')

    assert response.status_code == 502
    data = response.json()
    assert data['kind'] == 'aggregate_failure'
    assert [e['provider'] for e in data['errors']] == ['coinmarketcap', 'coingecko']
    assert [e['kind'] for e in data['errors']] == ['unauthorized', 'timeout']
