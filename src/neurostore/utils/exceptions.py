"""
Exception classes for the neurostore package.

This module contains custom exception classes used throughout the neurostore package.
"""

from typing import Any, Optional


class NeuroStoreError(Exception):
    """Base exception for neurostore-specific errors."""

    def __init__(self, message="Error in neurostore", details=None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class ValidationError(NeuroStoreError):
    """Exception raised when caller input is malformed."""

    def __init__(self, message="Invalid input", details=None):
        super().__init__(message, details)


class NotFoundError(NeuroStoreError):
    """Exception raised when an id does not resolve to an engram."""

    def __init__(self, message="Engram not found", details=None):
        super().__init__(message, details)


class ProviderError(NeuroStoreError):
    """Exception raised when an embedding or completion backend fails."""

    def __init__(self, message="Provider call failed", details=None):
        super().__init__(message, details)


class StoreError(NeuroStoreError):
    """Exception raised when the persistent store fails."""

    def __init__(self, message="Error in data store", details=None):
        super().__init__(message, details)


class ConfigurationError(NeuroStoreError):
    """Exception raised when there is an error in the configuration."""

    def __init__(self, message="Error in configuration", details=None):
        super().__init__(message, details)


class IngestionError(NeuroStoreError):
    """
    Exception raised when ingestion stops part way through a batch of facts.

    Facts committed before the failure stay committed. ``result`` lists them,
    ``failed_fact`` is the fact that was being processed, and the original
    error is available as ``__cause__``.
    """

    def __init__(self, message="Ingestion failed", result: Any = None,
                 failed_fact: Optional[str] = None, details=None):
        self.result = result
        self.failed_fact = failed_fact
        super().__init__(message, details)
