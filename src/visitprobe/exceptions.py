"""Error taxonomy for the visit probe."""

from typing import Optional


class ProbeError(Exception):
    """Base class for all probe errors."""


class ConfigurationError(ProbeError):
    """Malformed or missing configuration (URL list header, settings)."""


class NavigationError(ProbeError):
    """A single navigation attempt failed before a page could be observed."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class AuthenticationError(ProbeError):
    """The pre-flight login did not reach an authenticated session."""

    def __init__(self, message: str, result: Optional[object] = None):
        super().__init__(message)
        self.result = result


class ReportWriteError(ProbeError):
    """Report artifacts could not be written."""
