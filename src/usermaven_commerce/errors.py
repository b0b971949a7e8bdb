"""Exceptions raised for library misuse.

Collector failures are never raised; see ``CollectorClient.send``.
"""


class ConfigurationError(ValueError):
    """Raised when collector settings cannot be parsed."""


class InvalidCompanyError(ValueError):
    """Raised when a server-side event carries an incomplete company."""
