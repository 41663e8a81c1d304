"""
Core Exceptions

Custom exceptions for the Agent Eval platform.
"""


class BundleValidationError(Exception):
    """
    Raised when an export bundle is rejected before import.

    Validation runs before any write, so raising this never leaves
    partial effects behind. Routers map it to HTTP 400.
    """

    def __init__(self, message: str = "Invalid export bundle"):
        self.message = message
        super().__init__(self.message)


class BundleVersionError(BundleValidationError):
    """Raised when the bundle's major version is not supported."""


class BundleShapeError(BundleValidationError):
    """Raised when the bundle is structurally malformed."""
