"""Exception hierarchy for the forwarding proxy.

Forwarding failures are returned as values (see ``core.request_types``);
exceptions are reserved for problems that stop the process from starting.
"""


class ProxyException(Exception):
    """Base exception for all proxy errors."""


class SettingsError(ProxyException):
    """Raised when an environment setting is present but malformed."""
