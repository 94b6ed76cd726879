"""Error taxonomy for credential resolution.

Every error raised by this package derives from CredentialBrokerError, which
carries an optional suggestion and details block for console output.
"""

from typing import Optional


class CredentialBrokerError(Exception):
    """Base class for credential broker failures."""

    label = "Credential Error"

    def __init__(self, message: str, suggestion: Optional[str] = None, details: Optional[str] = None):
        # Include all parts in the base exception message for better error reporting
        full_message = message
        if suggestion:
            full_message += f"\n\n{suggestion}"
        if details:
            full_message += f"\n\n{details}"
        super().__init__(full_message)
        self.message = message
        self.suggestion = suggestion
        self.details = details

    def format(self) -> str:
        """Format error for console output with suggestions."""
        output = f"❌ {self.label}: {self.message}"
        if self.suggestion:
            output += f"\n   💡 {self.suggestion}"
        if self.details:
            output += f"\n   ℹ️  {self.details}"
        return output


class ConfigurationError(CredentialBrokerError):
    """Raised when a required setting is missing."""

    label = "Configuration Error"


class NetworkError(CredentialBrokerError):
    """Raised when the STS exchange is rejected or unreachable.

    Attributes:
        code: Error code reported by STS (or a local category such as
            "endpoint_unreachable" when no response was received)
    """

    label = "STS Error"

    def __init__(
        self,
        message: str,
        code: str = "sts_error",
        suggestion: Optional[str] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message, suggestion=suggestion, details=details)
        self.code = code


class InputError(CredentialBrokerError):
    """Raised when the operator's one-time code cannot be read."""

    label = "Input Error"


class CacheWriteError(CredentialBrokerError):
    """Raised when the credential cache file cannot be written.

    Never surfaced by CredentialResolver.resolve(); the resolver logs it and
    returns the fresh credentials anyway.
    """

    label = "Cache Error"
