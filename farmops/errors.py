"""
Error taxonomy for the compliance core.

Only data-integrity problems (orphaned schedule or override rows) are
absorbed locally. Everything here surfaces to the caller.
"""


class ComplianceError(Exception):
    """Base class for errors raised by the compliance core."""

    pass


class InvalidInput(ComplianceError):
    """A required parameter is missing or malformed. Raised before any computation."""

    pass


class DependencyFailure(ComplianceError):
    """An underlying data read or write failed. Never replaced by empty data."""

    pass
