import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from domain.exceptions.provider import (
    AggregateFailure,
    ConfigurationError,
    InvalidInputError,
    ProviderError,
    ProviderErrorKind,
    UpstreamUnavailable,
)
from domain.models.crypto import Coin, Currency, ProviderQuotes, Quote
from domain.normalization import unique_currencies
from infrastructure.monitoring.logger import time_operation
from infrastructure.providers.base import PriceProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceAggregation:
    """Outcome of one fan-out: successful legs and failed legs, each in registration order."""

    results: list[ProviderQuotes]
    errors: list[ProviderError]

    @property
    def quotes(self) -> list[Quote]:
        return [quote for result in self.results for quote in result.quotes]


class PriceAggregator:
    def __init__(self, providers: Sequence[PriceProvider], timeout: float = 5.0):
        if not providers:
            raise ConfigurationError("At least one price provider must be registered")
        self.providers = list(providers)
        self.timeout = timeout

    @property
    def provider_names(self) -> list[str]:
        return [provider.name.value for provider in self.providers]

    async def get_quotes(self, coin: Coin, currencies: Sequence[Currency]) -> PriceAggregation:
        """
        Ask every provider for `currencies` at once and wait for all of them.

        A slow or failing provider only costs its own leg; AggregateFailure is
        raised only when no provider succeeded.
        """
        requested = unique_currencies(currencies)

        with time_operation(logger, f"price fan-out for {coin.value}"):
            tasks = [
                asyncio.create_task(self._fetch_from_provider(provider, coin, requested))
                for provider in self.providers
            ]
            try:
                outcomes = await asyncio.gather(*tasks)
            except InvalidInputError:
                # bad caller input fails the whole request; stop the other legs
                for task in tasks:
                    task.cancel()
                raise

        results: list[ProviderQuotes] = []
        errors: list[ProviderError] = []
        for provider, outcome in zip(self.providers, outcomes, strict=True):
            if isinstance(outcome, ProviderError):
                errors.append(outcome)
            else:
                results.append(ProviderQuotes(provider=provider.name, quotes=tuple(outcome)))

        if not results:
            logger.error(
                f"All price providers failed for {coin.value}",
                extra={"extra_data": {"errors": [e.to_dict() for e in errors]}},
            )
            raise AggregateFailure(errors)
        if errors:
            logger.warning(
                f"{len(errors)} of {len(self.providers)} price providers failed for {coin.value}",
                extra={"extra_data": {"errors": [e.to_dict() for e in errors]}},
            )

        return PriceAggregation(results=results, errors=errors)

    async def get_quotes_for_amount(self, coin: Coin, currency: Currency, amount: Decimal) -> list[Quote]:
        """Quotes from every successful provider, each scaled to `amount` units of `coin`."""
        if amount <= 0:
            raise InvalidInputError(f"Amount must be greater than zero, got {amount}")

        aggregation = await self.get_quotes(coin, [currency])
        return [quote.with_amount(amount) for quote in aggregation.quotes]

    async def _fetch_from_provider(
        self, provider: PriceProvider, coin: Coin, currencies: list[Currency]
    ) -> list[Quote] | ProviderError:
        name = provider.name.value
        try:
            return await asyncio.wait_for(provider.get_quotes(coin, currencies), timeout=self.timeout)
        except TimeoutError:
            logger.warning(f"Provider {name} timed out after {self.timeout}s")
            return UpstreamUnavailable(name, f"No response within {self.timeout}s", ProviderErrorKind.TIMEOUT)
        except ProviderError as e:
            logger.error(f"Provider {name} failed: {e}")
            return e
        except InvalidInputError:
            raise
        except Exception as e:
            logger.exception(f"Provider {name} raised unexpectedly")
            return ProviderError(name, f"Unexpected error: {e.__class__.__name__}: {e}")
