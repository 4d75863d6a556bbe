"""Release notes exception classes."""


class ReleaseNotesError(Exception):
    """Base exception for all release notes errors."""


class ConfigurationError(ReleaseNotesError, ValueError):
    """Raised when the configuration cannot drive a render (unknown sort field, bad schema)."""
