"""
Error taxonomy for the holdings and pricing services.

Every service-level failure is a PortfolioError carrying a stable error_code,
an HTTP status for the API boundary and optional details (upstream status,
response body, offending field...). The API layer turns them into
{"message", "error", "details"} JSON bodies.
"""
from typing import Optional


class PortfolioError(Exception):
    """Base exception for holdings/pricing errors."""

    error_code = "PORTFOLIO_ERROR"
    status_code = 500

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"message": self.message, "error": self.error_code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(PortfolioError):
    """Missing or invalid input."""
    error_code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(PortfolioError):
    """Requested holding does not exist."""
    error_code = "NOT_FOUND"
    status_code = 404


class PriceUnavailableError(PortfolioError):
    """No market price could be determined for an asset."""
    error_code = "PRICE_UNAVAILABLE"
    status_code = 404


class ConfigurationError(PortfolioError):
    """A required external credential or setting is missing."""
    error_code = "CONFIGURATION_ERROR"
    status_code = 500


class ExternalServiceError(PortfolioError):
    """
    Transient upstream failure (network error, timeout, 5xx, rate limit notice).

    Retried by the resolver where the asset class policy allows it.
    """
    error_code = "EXTERNAL_SERVICE_ERROR"
    status_code = 500
