"""Resolution request configuration.

The request is read once per process from environment variables. A ``.env``
file in the working directory (if present) is loaded first, without
overriding variables already set in the environment.

Environment variables:
    AWS_REGION: AWS region (required)
    ROLE_ARN: IAM role to assume (optional; enables role assumption)
    MFA_SERIAL: MFA device serial/ARN (optional; enables the MFA prompt)
    ROLE_SESSION_NAME: Role session name (optional; generated when unset)
    CREDENTIAL_CACHE_FILE: Cache file path (default: cached_credentials.json)
"""

import os
import socket
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import structlog
from dotenv import find_dotenv, load_dotenv

from .errors import ConfigurationError

logger = structlog.get_logger(__name__)

#: Fixed STS session duration (1 hour)
SESSION_DURATION_SECONDS = 3600

DEFAULT_CACHE_FILE = "cached_credentials.json"
SESSION_NAME_PREFIX = "credential-broker"


class ResolutionMode(str, Enum):
    """Which path produces the credential set."""

    DIRECT = "direct"
    ASSUME_ROLE = "assume-role"
    ASSUME_ROLE_WITH_MFA = "assume-role-mfa"


def generate_session_name() -> str:
    """Generate a role session name for CloudTrail auditing.

    Returns:
        Session name in format: "credential-broker-{hostname}-{timestamp}"
    """
    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = "unknown"

    # 64 chars max: 18 for the prefix, 11 for "-{timestamp}", leaving 34 for hostname
    hostname = hostname[:34]

    timestamp = int(time.time())
    return f"{SESSION_NAME_PREFIX}-{hostname}-{timestamp}"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class ResolutionRequest:
    """Everything the resolver needs to produce one credential set.

    Empty strings are treated as unset, so ``ROLE_ARN=`` in a .env file does
    not switch on role assumption.
    """

    region: Optional[str]
    role_arn: Optional[str] = None
    mfa_serial: Optional[str] = None
    session_name: str = field(default_factory=generate_session_name)
    duration_seconds: int = SESSION_DURATION_SECONDS
    cache_path: Path = Path(DEFAULT_CACHE_FILE)

    def __post_init__(self):
        object.__setattr__(self, "region", _clean(self.region))
        object.__setattr__(self, "role_arn", _clean(self.role_arn))
        object.__setattr__(self, "mfa_serial", _clean(self.mfa_serial))
        object.__setattr__(self, "cache_path", Path(self.cache_path))

    @property
    def mode(self) -> ResolutionMode:
        if not self.role_arn:
            return ResolutionMode.DIRECT
        if self.mfa_serial:
            return ResolutionMode.ASSUME_ROLE_WITH_MFA
        return ResolutionMode.ASSUME_ROLE

    def validate(self) -> None:
        """Check required settings.

        Raises:
            ConfigurationError: If AWS_REGION is missing
        """
        if not self.region:
            raise ConfigurationError(
                "Missing required configuration: AWS_REGION",
                suggestion="Set AWS_REGION in the environment or in a .env file (e.g., AWS_REGION=us-east-1)",
            )


def load_request(env_file: Optional[Path] = None, load_env_file: bool = True) -> ResolutionRequest:
    """Build a ResolutionRequest from the process environment.

    Args:
        env_file: Explicit .env path (defaults to the nearest .env from the working directory up)
        load_env_file: Set False to skip .env loading entirely

    Returns:
        Validated ResolutionRequest

    Raises:
        ConfigurationError: If AWS_REGION is missing
    """
    if load_env_file:
        load_dotenv(dotenv_path=env_file or find_dotenv(usecwd=True))

    session_name = _clean(os.getenv("ROLE_SESSION_NAME"))
    request = ResolutionRequest(
        region=os.getenv("AWS_REGION"),
        role_arn=os.getenv("ROLE_ARN"),
        mfa_serial=os.getenv("MFA_SERIAL"),
        session_name=session_name or generate_session_name(),
        cache_path=Path(os.getenv("CREDENTIAL_CACHE_FILE") or DEFAULT_CACHE_FILE),
    )
    request.validate()

    logger.debug(
        "Resolution request loaded",
        region=request.region,
        mode=request.mode.value,
        cache_path=str(request.cache_path),
    )
    return request
