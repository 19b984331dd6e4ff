"""
Exception taxonomy.

Only ConfigurationError is fatal; it is raised before a run starts. The
other classes are caught at stage or page boundaries and turned into
counts and warnings.
"""


class CiteguardError(Exception):
    """Base exception for citeguard errors."""

    pass


class ConfigurationError(CiteguardError):
    """Raised when configuration or a required credential is missing."""

    pass


class JudgmentServiceError(CiteguardError):
    """Raised when an external judgment call fails or returns garbage."""

    pass


class SourceDiscoveryError(CiteguardError):
    """Raised when the source-discovery search fails."""

    pass


class PageNotFoundError(CiteguardError):
    """Raised when a page id does not resolve to a file."""

    pass
