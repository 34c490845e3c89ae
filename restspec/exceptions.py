"""
Custom exceptions for restspec.
"""
from pydantic import ValidationError

__all__ = ["RestSpecError", "ConfigurationError", "ValidationError"]


class RestSpecError(Exception):
    """Base exception for restspec errors."""

    pass


class ConfigurationError(RestSpecError):
    """Raised at setup time when the application configuration cannot produce a valid document.

    This is fatal: the application must not start serving requests.
    """

    def __init__(self, message="Invalid restspec configuration"):
        self.message = message
        super().__init__(self.message)
