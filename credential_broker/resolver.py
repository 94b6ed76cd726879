"""Credential resolution.

CredentialResolver picks one of three paths for a ResolutionRequest:

- DIRECT: no role configured, credentials come from boto3's default
  provider chain (environment, shared config, instance metadata, ...).
- ASSUME_ROLE: cached credentials if still valid, otherwise sts:AssumeRole.
- ASSUME_ROLE_WITH_MFA: as above, prompting for an MFA code on a cache miss.

Freshly assumed credentials are written to the cache. A failed cache write
is logged and ignored; the caller still gets the new credentials.

Usage:
    from credential_broker import load_request, CredentialResolver

    credentials = CredentialResolver(load_request()).resolve()
"""

from typing import Any, Callable, Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError

from .auth.role_manager import MfaToken, RoleManager
from .cache import CredentialCache
from .config import ResolutionMode, ResolutionRequest
from .errors import CacheWriteError, ConfigurationError, InputError
from .models import CredentialSet
from .prompt import read_secret

logger = structlog.get_logger(__name__)

MFA_PROMPT = "Enter MFA code: "


class CredentialResolver:
    """Resolves one credential set for a ResolutionRequest.

    Collaborators default to the real implementations and can be replaced
    for testing or embedding.

    Attributes:
        request: The resolution request
        cache: Credential cache for role-assumed credentials
        role_manager: STS client wrapper
    """

    def __init__(
        self,
        request: ResolutionRequest,
        cache: Optional[CredentialCache] = None,
        role_manager: Optional[RoleManager] = None,
        prompt: Optional[Callable[[str], str]] = None,
        default_session_factory: Optional[Callable[..., Any]] = None,
    ):
        self.request = request
        self.cache = cache if cache is not None else CredentialCache(request.cache_path)
        self.role_manager = role_manager
        self._prompt = prompt if prompt is not None else read_secret
        self._default_session_factory = (
            default_session_factory if default_session_factory is not None else boto3.Session
        )

    def resolve(self) -> CredentialSet:
        """Resolve credentials for the request.

        Returns:
            CredentialSet ready to hand to a boto3 session

        Raises:
            ConfigurationError: If a required setting is missing or no default credentials exist
            NetworkError: If STS rejects the request or cannot be reached
            InputError: If the MFA code cannot be read
        """
        self.request.validate()
        mode = self.request.mode

        logger.debug("Resolving credentials", mode=mode.value, region=self.request.region)

        if mode is ResolutionMode.DIRECT:
            return self._resolve_default()
        return self._resolve_assumed_role()

    def _resolve_default(self) -> CredentialSet:
        try:
            session = self._default_session_factory(region_name=self.request.region)
            credentials = session.get_credentials()
            frozen = credentials.get_frozen_credentials() if credentials is not None else None
        except BotoCoreError as e:
            raise ConfigurationError(
                "Could not load AWS credentials from the default provider chain",
                suggestion="Check AWS_PROFILE and your shared config, or set ROLE_ARN",
                details=str(e),
            ) from e

        if frozen is None:
            raise ConfigurationError(
                "No AWS credentials found in the default provider chain",
                suggestion="Configure credentials (e.g., AWS_PROFILE or AWS_ACCESS_KEY_ID) or set ROLE_ARN",
            )

        if not frozen.access_key or not frozen.secret_key:
            raise ConfigurationError("Default provider chain returned incomplete AWS credentials")

        logger.info("Using default AWS credentials (no role ARN provided)", method=getattr(credentials, "method", None))
        return CredentialSet(
            access_key_id=frozen.access_key,
            secret_access_key=frozen.secret_key,
            session_token=frozen.token or None,
            source="default",
        )

    def _resolve_assumed_role(self) -> CredentialSet:
        cached = self.cache.load()
        if cached is not None:
            logger.info(
                "Using cached credentials",
                role_arn=self.request.role_arn,
                expires_at=cached.expiration.isoformat(),
            )
            return cached.to_credentials()

        mfa = None
        if self.request.mode is ResolutionMode.ASSUME_ROLE_WITH_MFA:
            code = self._prompt(MFA_PROMPT)
            if not code or not code.strip():
                raise InputError("No MFA code entered", suggestion="Enter the current code from your MFA device")
            mfa = MfaToken(serial=self.request.mfa_serial, code=code)

        credentials = self._get_role_manager().assume_role(
            self.request.role_arn,
            self.request.session_name,
            duration_seconds=self.request.duration_seconds,
            mfa=mfa,
        )

        try:
            self.cache.store(credentials.to_record())
        except CacheWriteError as e:
            logger.warning("Could not cache assumed-role credentials", path=str(self.cache.path), error=e.message)

        return credentials

    def _get_role_manager(self) -> RoleManager:
        if self.role_manager is None:
            self.role_manager = RoleManager(region=self.request.region)
        return self.role_manager


def resolve_credentials(request: ResolutionRequest) -> CredentialSet:
    """Resolve credentials with the default collaborators."""
    return CredentialResolver(request).resolve()
