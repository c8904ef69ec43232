# =============================================================================
# Sails Python Client -- Error Types
# =============================================================================


class SailsError(Exception):
    """Base exception for all sails client errors."""


class SailsConfigurationError(SailsError):
    """Client cannot be set up (e.g. no transport available)."""


class SailsValidationError(SailsError, ValueError):
    """Malformed request arguments (bad URL, unknown method)."""


class SailsConnectionError(SailsError):
    """Connection-related errors (closed handle, failed open)."""


class SailsProtocolError(SailsError):
    """Wire protocol errors (malformed frames, unknown prefixes)."""
