"""Custom exception types for xcc."""

API_KEYS_URL = "https://appstoreconnect.apple.com/access/integrations/api"


class XccError(Exception):
    """Base exception for all errors reported to the user."""


class ConfigurationError(XccError):
    """Raised when command-line options or environment values are invalid or conflicting."""


class AuthenticationError(XccError):
    """Raised when App Store Connect API credentials are unavailable or rejected."""


class ApiError(XccError):
    """Raised when an App Store Connect API request fails or returns an unexpected response."""


class NotFoundError(XccError):
    """Raised when a product, workflow, reference or pull request cannot be selected."""
