"""AWS IAM role assumption via STS.

This module performs a single sts:AssumeRole call and converts the response
into a CredentialSet. MFA is supported by passing the device serial and the
operator's one-time code in the same request.
"""

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

import boto3
import structlog
from botocore.config import Config as BotocoreConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..config import SESSION_DURATION_SECONDS
from ..errors import NetworkError
from ..models import CredentialSet, to_utc

logger = structlog.get_logger(__name__)

# One round trip per resolution: botocore's own retries are disabled
STS_CLIENT_CONFIG = BotocoreConfig(
    retries={"total_max_attempts": 1, "mode": "standard"},
    connect_timeout=5,
    read_timeout=15,
)


@dataclass(frozen=True)
class MfaToken:
    """MFA device serial and the one-time code read from the operator."""

    serial: str
    code: str

    def __post_init__(self):
        if not self.serial:
            raise ValueError("MFA serial must not be empty")
        if not self.code:
            raise ValueError("MFA code must not be empty")

    def __repr__(self) -> str:
        return f"MfaToken(serial={self.serial}, code=***)"


def sanitize_session_name(name: str) -> str:
    """Sanitize for STS (2-64 chars, alphanumeric and =,.@_-)."""
    safe = re.sub(r"[^a-zA-Z0-9=,.@_-]", "-", name)
    safe = re.sub(r"-+", "-", safe).strip("-")
    if len(safe) > 64:
        suffix = hashlib.sha256(name.encode()).hexdigest()[:8]
        safe = safe[:55] + "-" + suffix
    return safe if len(safe) >= 2 else "cb-" + safe


class RoleManager:
    """Assumes IAM roles through STS.

    Usage:
        manager = RoleManager(region="us-east-1")
        creds = manager.assume_role(
            role_arn="arn:aws:iam::123456789012:role/Deploy",
            session_name="credential-broker-host-1700000000",
            mfa=MfaToken(serial="arn:aws:iam::123456789012:mfa/alice", code="123456"),
        )

    Attributes:
        region: AWS region for the STS client
    """

    def __init__(self, region: str, client_factory: Optional[Callable[..., Any]] = None):
        """Initialize RoleManager.

        Args:
            region: AWS region for the STS endpoint
            client_factory: Callable building the STS client (defaults to boto3.client)
        """
        self.region = region
        self._client_factory = client_factory or boto3.client
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = self._client_factory("sts", region_name=self.region, config=STS_CLIENT_CONFIG)
            logger.debug("STS client initialized", region=self.region)
        return self._client

    def assume_role(
        self,
        role_arn: str,
        session_name: str,
        duration_seconds: int = SESSION_DURATION_SECONDS,
        mfa: Optional[MfaToken] = None,
    ) -> CredentialSet:
        """Assume an IAM role and return its temporary credentials.

        Args:
            role_arn: ARN of IAM role to assume
            session_name: Role session name (sanitized for STS)
            duration_seconds: Requested credential lifetime
            mfa: MFA serial and one-time code, if the role requires MFA

        Returns:
            CredentialSet with session token and UTC expiration

        Raises:
            NetworkError: If STS rejects the request or cannot be reached
        """
        safe_session_name = sanitize_session_name(session_name)
        params: dict[str, Any] = {
            "RoleArn": role_arn,
            "RoleSessionName": safe_session_name,
            "DurationSeconds": duration_seconds,
        }
        if mfa is not None:
            params["SerialNumber"] = mfa.serial
            params["TokenCode"] = mfa.code

        logger.debug(
            "Assuming IAM role",
            role_arn=role_arn,
            session_name=safe_session_name,
            mfa=mfa is not None,
        )

        try:
            response = self._get_client().assume_role(**params)
        except ClientError as e:
            error = e.response.get("Error", {})
            error_code = error.get("Code", "Unknown")
            error_message = error.get("Message", str(e))

            logger.error(
                "Failed to assume role",
                role_arn=role_arn,
                session_name=safe_session_name,
                error_code=error_code,
                error=error_message,
            )
            raise NetworkError(
                f"STS rejected AssumeRole for {role_arn}: {error_message}",
                code=error_code,
                suggestion=self._suggestion_for(error_code, mfa),
            ) from e
        except BotoCoreError as e:
            logger.error(
                "Failed to reach STS",
                role_arn=role_arn,
                region=self.region,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise NetworkError(
                f"Could not complete AssumeRole for {role_arn}: {e}",
                code=type(e).__name__,
                suggestion="Check network connectivity and the source credentials used to call STS",
            ) from e

        credentials = self._parse_credentials(response, role_arn)

        logger.info(
            "Role assumed successfully",
            role_arn=role_arn,
            expires_at=credentials.expiration.isoformat() if credentials.expiration else None,
        )
        return credentials

    @staticmethod
    def _parse_credentials(response: dict, role_arn: str) -> CredentialSet:
        try:
            creds = response["Credentials"]
            expiration = creds["Expiration"]
            if isinstance(expiration, str):
                expiration = datetime.fromisoformat(expiration.replace("Z", "+00:00"))
            return CredentialSet(
                access_key_id=creds["AccessKeyId"],
                secret_access_key=creds["SecretAccessKey"],
                session_token=creds["SessionToken"],
                expiration=to_utc(expiration),
                source="assume-role",
            )
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkError(
                f"STS returned no usable credentials for {role_arn}",
                code="invalid_response",
                details=str(e),
            ) from e

    @staticmethod
    def _suggestion_for(error_code: str, mfa: Optional[MfaToken]) -> Optional[str]:
        if error_code == "AccessDenied":
            if mfa is not None:
                return "Check the MFA code (codes are single-use and expire quickly) and MFA_SERIAL"
            return "Check the role trust policy; set MFA_SERIAL if the role requires MFA"
        if error_code in ("ExpiredToken", "ExpiredTokenException", "InvalidClientTokenId"):
            return "The source credentials used to call STS are invalid or expired"
        if error_code == "RegionDisabledException":
            return "Activate STS in this region or set a different AWS_REGION"
        return None
