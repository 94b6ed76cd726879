"""Short-lived AWS credential broker.

Resolves credentials for a downstream boto3 client, either from the default
provider chain or by assuming an IAM role (optionally with MFA), caching
assumed-role credentials on disk until they expire.
"""

from .config import ResolutionMode, ResolutionRequest, load_request
from .errors import (
    CacheWriteError,
    ConfigurationError,
    CredentialBrokerError,
    InputError,
    NetworkError,
)
from .models import CachedCredentialRecord, CredentialSet
from .resolver import CredentialResolver, resolve_credentials

__all__ = [
    "CacheWriteError",
    "CachedCredentialRecord",
    "ConfigurationError",
    "CredentialBrokerError",
    "CredentialResolver",
    "CredentialSet",
    "InputError",
    "NetworkError",
    "ResolutionMode",
    "ResolutionRequest",
    "load_request",
    "resolve_credentials",
]
