from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_names(value: str) -> list[str]:
	names = (name.strip().lower() for name in value.split(','))
	return list(dict.fromkeys(name for name in names if name))


class Settings(BaseSettings):
	# Application
	APP_NAME: str = 'Boltzmann API'
	APP_VERSION: str = '0.1.0'
	DEBUG: bool = False
	HOST: str = '127.0.0.1'
	PORT: int = 3000

	LOG_LEVEL: str = 'INFO'
	LOG_FORMAT: Literal['text', 'json'] = 'text'

	COINMARKETCAP_API_KEY: str = ''
	COINGECKO_API_KEY: str = ''
	ETHERSCAN_API_KEY: str = ''
	ETHEREUM_RPC_URL: str = ''

	# Providers, in registration order
	PRICE_PROVIDERS: str = 'coinmarketcap,coingecko'
	GAS_PROVIDERS: str = 'etherscan,alloy'
	DEFAULT_GAS_PROVIDER: str = 'etherscan'

	PROVIDER_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)
	PROVIDER_MAX_ATTEMPTS: int = Field(default=2, ge=1)
	RPC_MAX_BLOCK_AGE_SECONDS: int = Field(default=120, gt=0)

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')

	@property
	def price_provider_names(self) -> list[str]:
		return _split_names(self.PRICE_PROVIDERS)

	@property
	def gas_provider_names(self) -> list[str]:
		return _split_names(self.GAS_PROVIDERS)


@lru_cache
def get_settings() -> Settings:
	return Settings()
