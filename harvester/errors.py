"""
Exception types raised by the harvester.
"""


class HarvesterError(Exception):
    """Base class for harvester errors."""


class ConfigError(HarvesterError):
    """Required settings are missing or invalid."""


class PersistenceError(HarvesterError):
    """A durable store could not be written. Always fatal."""


class ProviderError(HarvesterError):
    """The remote browser-profile provider rejected a request."""


class NavigationError(HarvesterError):
    """A page could not be opened. Retryable per item."""


class WaitTimeout(NavigationError):
    """The bounded wait for page content expired."""


class ExtractionError(HarvesterError):
    """A rendered page did not yield the expected data."""
