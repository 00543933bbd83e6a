from enum import Enum


class BoltzmannError(Exception):
    pass


class ConfigurationError(BoltzmannError):
    pass


class InvalidInputError(BoltzmannError):
    pass


class ProviderErrorKind(str, Enum):
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    TIMEOUT = "timeout"
    UPSTREAM_REJECTED = "upstream_rejected"
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    MALFORMED_RESPONSE = "malformed_response"
    STALE_DATA = "stale_data"
    UNEXPECTED = "unexpected"


class ProviderError(BoltzmannError):
    """A single provider failed to produce a result."""

    default_kind = ProviderErrorKind.UNEXPECTED

    def __init__(self, provider: str, message: str, kind: ProviderErrorKind | None = None):
        self.provider = provider
        self.message = message
        self.kind = kind or self.default_kind
        super().__init__(f"{provider}: {message}")

    def to_dict(self) -> dict:
        return {"provider": self.provider, "kind": self.kind.value, "message": self.message}


class UpstreamUnavailable(ProviderError):
    default_kind = ProviderErrorKind.UPSTREAM_UNAVAILABLE


class UpstreamRejected(ProviderError):
    default_kind = ProviderErrorKind.UPSTREAM_REJECTED

    def __init__(
        self,
        provider: str,
        message: str,
        kind: ProviderErrorKind | None = None,
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(provider, message, kind)


class MalformedResponse(ProviderError):
    default_kind = ProviderErrorKind.MALFORMED_RESPONSE


class AggregateFailure(BoltzmannError):
    """Every provider in a fan-out failed."""

    def __init__(self, errors: list[ProviderError]):
        self.errors = list(errors)
        providers = ", ".join(e.provider for e in self.errors) or "none"
        super().__init__(f"All providers failed ({providers})")
