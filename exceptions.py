class EkzError(Exception):
    """Base exception for ekz-tesla operations."""

    pass


class ConfigError(EkzError):
    """Exception raised for missing or invalid configuration."""

    pass


class TokenError(EkzError):
    """Exception raised for token-related errors."""

    pass


class AuthenticationExhaustedError(TokenError):
    """Exception raised when no further re-authentication attempt is allowed."""

    pass


class ChargingError(EkzError):
    """Exception raised for charging-related errors."""

    pass


class TransactionNotFoundError(ChargingError):
    """The charging station has no active transaction for the connector."""

    pass


class VehicleError(EkzError):
    """Exception raised for vehicle-related errors."""

    pass


class TimeRangeError(ValueError):
    """Exception raised for malformed high tariff time ranges."""

    pass
