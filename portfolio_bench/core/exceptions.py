"""Custom exceptions for the portfolio benchmark tool."""


class PortfolioBenchError(Exception):
    """Base exception for all portfolio benchmark errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TokenSourceNotFoundError(PortfolioBenchError):
    """Raised when the token source (deployment record) does not exist."""

    def __init__(self, location: str):
        super().__init__(f"Token source not found: {location}", {"location": location})
        self.location = location


class TokenSourceMalformedError(PortfolioBenchError):
    """Raised when the token source exists but cannot be parsed."""

    def __init__(self, location: str, reason: str):
        super().__init__(
            f"Token source malformed ({location}): {reason}",
            {"location": location, "reason": reason},
        )
        self.location = location
        self.reason = reason


class FetchError(PortfolioBenchError):
    """Raised when a single token balance read fails."""

    def __init__(self, symbol: str, message: str):
        super().__init__(f"[{symbol}] {message}", {"symbol": symbol})
        self.symbol = symbol


class BatchFetchError(PortfolioBenchError):
    """Raised when the aggregated balance read fails for the whole token list."""

    def __init__(self, message: str, token_count: int | None = None):
        super().__init__(f"Batched read failed: {message}", {"token_count": token_count})
        self.token_count = token_count


class PriceFetchError(PortfolioBenchError):
    """Raised internally when the price feed fails.

    Never escapes the price oracle: it is absorbed into the fallback table.
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(
            f"[coingecko] {message}",
            {"endpoint": endpoint, "status_code": status_code},
        )
        self.endpoint = endpoint
        self.status_code = status_code


class ConfigurationError(PortfolioBenchError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, config_key: str, message: str):
        full_message = f"Configuration error [{config_key}]: {message}"
        super().__init__(full_message, {"config_key": config_key})
        self.config_key = config_key
