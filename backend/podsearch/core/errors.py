"""
Exception types raised by the search pipeline.

ConfigurationError and UpstreamError come from the search client and are
wrapped into SearchFailure by the orchestrator. LLMError never leaves the
intent analyzer; it only selects the fallback strategy.
"""
from typing import Optional


class PodsearchError(Exception):
    """Base class for errors raised by this service."""


class ConfigurationError(PodsearchError):
    """Raised when a required credential is missing or invalid."""


class UpstreamError(PodsearchError):
    """Raised when the search provider fails or does not respond."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SearchFailure(PodsearchError):
    """Raised by the orchestrator when a search cannot be answered."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class LLMError(PodsearchError):
    """Raised by the generative backend client on any failed call."""

    def __init__(self, message: str, reason: str = "unexpected_error"):
        super().__init__(message)
        self.reason = reason
