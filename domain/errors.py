"""
Request-level errors for outreach operations.

Per-item batch outcomes (not found, already sent, send failures, recording
failures) are reported in dispatch results and are not raised.
"""


class OutreachError(Exception):
    """Base class for outreach errors."""
    pass


class InvalidRequestError(OutreachError, ValueError):
    """Raised when a request is structurally invalid (e.g. missing or empty ids)."""
    pass


class SignupNotFoundError(OutreachError, LookupError):
    """Raised when a single-signup lookup finds no record."""
    pass
