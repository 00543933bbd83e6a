import asyncio
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from application.services import PriceAggregator
from domain.exceptions.provider import (
    AggregateFailure,
    ConfigurationError,
    InvalidInputError,
    ProviderErrorKind,
    UpstreamRejected,
)
from domain.models.crypto import Coin, Currency, PriceProviderSource, Quote


def make_quote(provider: PriceProviderSource, currency: Currency, price: str) -> Quote:
    return Quote(
        coin=Coin.ETH,
        currency=currency,
        price=Decimal(price),
        provider=provider,
        timestamp=datetime(2025, 9, 1, 12, 0, tzinfo=UTC),
    )


def make_provider(source: PriceProviderSource, prices: dict | None = None, error: Exception | None = None):
    provider = MagicMock()
    provider.name = source
    if error is not None:
        provider.get_quotes = AsyncMock(side_effect=error)
    else:
        provider.get_quotes = AsyncMock(
            side_effect=lambda coin, currencies: [make_quote(source, c, prices[c]) for c in currencies]
        )
    return provider


def make_slow_provider(source: PriceProviderSource, delay: float, started: list | None = None):
    async def get_quotes(coin, currencies):
        if started is not None:
            started.append(source)
        await asyncio.sleep(delay)
        return [make_quote(source, c, '1') for c in currencies]

    provider = MagicMock()
    provider.name = source
    provider.get_quotes = get_quotes
    return provider


@pytest.fixture
def cmc():
    return make_provider(
        PriceProviderSource.COINMARKETCAP,
        {Currency.USD: '4164.82', Currency.EUR: '3850.10'},
    )


@pytest.fixture
def coingecko():
    return make_provider(
        PriceProviderSource.COINGECKO,
        {Currency.USD: '4160.00', Currency.EUR: '3848.00'},
    )


@pytest.mark.asyncio
async def test_get_quotes_all_providers_succeed(cmc, coingecko):
    aggregator = PriceAggregator([cmc, coingecko], timeout=1)

    aggregation = await aggregator.get_quotes(Coin.ETH, [Currency.USD, Currency.EUR])

    assert [r.provider for r in aggregation.results] == [
        PriceProviderSource.COINMARKETCAP,
        PriceProviderSource.COINGECKO,
    ]
    assert aggregation.errors == []
    assert [q.currency for q in aggregation.results[0].quotes] == [Currency.USD, Currency.EUR]
    assert aggregation.results[0].quotes[0].price == Decimal('4164.82')
    cmc.get_quotes.assert_awaited_once_with(Coin.ETH, [Currency.USD, Currency.EUR])


@pytest.mark.asyncio
async def test_get_quotes_keeps_registration_order_not_completion_order():
    slow = make_slow_provider(PriceProviderSource.COINMARKETCAP, 0.05)
    fast = make_slow_provider(PriceProviderSource.COINGECKO, 0)
    aggregator = PriceAggregator([slow, fast], timeout=1)

    aggregation = await aggregator.get_quotes(Coin.ETH, [Currency.USD])

    assert [r.provider for r in aggregation.results] == [
        PriceProviderSource.COINMARKETCAP,
        PriceProviderSource.COINGECKO,
    ]


@pytest.mark.asyncio
async def test_get_quotes_one_provider_fails(cmc):
    error = UpstreamRejected('coingecko', 'HTTP error 429: Throttled', ProviderErrorKind.RATE_LIMITED)
    failing = make_provider(PriceProviderSource.COINGECKO, error=error)
    aggregator = PriceAggregator([cmc, failing], timeout=1)

    aggregation = await aggregator.get_quotes(Coin.ETH, [Currency.USD])

    assert [r.provider for r in aggregation.results] == [PriceProviderSource.COINMARKETCAP]
    assert aggregation.errors == [error]


@pytest.mark.asyncio
async def test_get_quotes_timeout_is_isolated_to_its_leg(coingecko):
    hanging = make_slow_provider(PriceProviderSource.COINMARKETCAP, 10)
    aggregator = PriceAggregator([hanging, coingecko], timeout=0.05)

    start = asyncio.get_running_loop().time()
    aggregation = await aggregator.get_quotes(Coin.ETH, [Currency.USD])
    elapsed = asyncio.get_running_loop().time() - start

    assert elapsed < 1
    assert [r.provider for r in aggregation.results] == [PriceProviderSource.COINGECKO]
    assert len(aggregation.errors) == 1
    assert aggregation.errors[0].provider == 'coinmarketcap'
    assert aggregation.errors[0].kind is ProviderErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_get_quotes_unexpected_exception_becomes_provider_error(cmc):
    broken = make_provider(PriceProviderSource.COINGECKO, error=KeyError('ethereum'))
    aggregator = PriceAggregator([cmc, broken], timeout=1)

    aggregation = await aggregator.get_quotes(Coin.ETH, [Currency.USD])

    assert len(aggregation.results) == 1
    assert aggregation.errors[0].kind is ProviderErrorKind.UNEXPECTED
    assert aggregation.errors[0].provider == 'coingecko'


@pytest.mark.asyncio
async def test_get_quotes_invalid_input_from_provider_is_not_wrapped():
    rejecting = make_provider(PriceProviderSource.COINMARKETCAP, error=InvalidInputError('Unsupported currency: XYZ'))
    slow = make_slow_provider(PriceProviderSource.COINGECKO, 10)
    aggregator = PriceAggregator([rejecting, slow], timeout=30)

    with pytest.raises(InvalidInputError) as exc_info:
        await aggregator.get_quotes(Coin.ETH, [Currency.USD])

    assert 'XYZ' in str(exc_info.value)
    for _ in range(10):
        await asyncio.sleep(0)
    remaining = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
    assert remaining == []


@pytest.mark.asyncio
async def test_get_quotes_all_providers_fail():
    first = UpstreamRejected('coinmarketcap', 'HTTP error 401: bad key', ProviderErrorKind.UNAUTHORIZED)
    second = UpstreamRejected('coingecko', 'HTTP error 429: Throttled', ProviderErrorKind.RATE_LIMITED)
    aggregator = PriceAggregator(
        [
            make_provider(PriceProviderSource.COINMARKETCAP, error=first),
            make_provider(PriceProviderSource.COINGECKO, error=second),
        ],
        timeout=1,
    )

    with pytest.raises(AggregateFailure) as exc_info:
        await aggregator.get_quotes(Coin.ETH, [Currency.USD])

    assert exc_info.value.errors == [first, second]
    assert 'coinmarketcap, coingecko' in str(exc_info.value)


@pytest.mark.asyncio
async def test_get_quotes_empty_currencies_makes_no_calls(cmc, coingecko):
    aggregator = PriceAggregator([cmc, coingecko], timeout=1)

    with pytest.raises(InvalidInputError):
        await aggregator.get_quotes(Coin.ETH, [])

    cmc.get_quotes.assert_not_called()
    coingecko.get_quotes.assert_not_called()


@pytest.mark.asyncio
async def test_get_quotes_cancellation_reaches_every_leg():
    started = []
    providers = [
        make_slow_provider(PriceProviderSource.COINMARKETCAP, 10, started),
        make_slow_provider(PriceProviderSource.COINGECKO, 10, started),
    ]
    aggregator = PriceAggregator(providers, timeout=30)

    task = asyncio.create_task(aggregator.get_quotes(Coin.ETH, [Currency.USD]))
    while len(started) < 2:
        await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    remaining = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
    assert remaining == []


@pytest.mark.asyncio
async def test_get_quotes_for_amount_scales_every_quote(cmc, coingecko):
    aggregator = PriceAggregator([cmc, coingecko], timeout=1)

    quotes = await aggregator.get_quotes_for_amount(Coin.ETH, Currency.USD, Decimal('2.5'))

    assert [q.provider for q in quotes] == [PriceProviderSource.COINMARKETCAP, PriceProviderSource.COINGECKO]
    assert quotes[0].quote_per_amount.amount == Decimal('2.5')
    assert quotes[0].quote_per_amount.total_price == Decimal('10412.050')
    assert quotes[0].price == Decimal('4164.82')


@pytest.mark.asyncio
@pytest.mark.parametrize('amount', [Decimal(0), Decimal('-1')])
async def test_get_quotes_for_amount_rejects_non_positive_amount(cmc, amount):
    aggregator = PriceAggregator([cmc], timeout=1)

    with pytest.raises(InvalidInputError):
        await aggregator.get_quotes_for_amount(Coin.ETH, Currency.USD, amount)

    cmc.get_quotes.assert_not_called()


def test_provider_names_in_registration_order(cmc, coingecko):
    aggregator = PriceAggregator([coingecko, cmc])

    assert aggregator.provider_names == ['coingecko', 'coinmarketcap']


def test_no_providers_is_configuration_error():
    with pytest.raises(ConfigurationError):
        PriceAggregator([])
