"""Credential data models.

CredentialSet is the in-memory result handed to callers. CachedCredentialRecord
is the pydantic model persisted by the credential cache; it only ever holds
role-assumed credentials, so its session token and expiration are required.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_utc(value: datetime) -> datetime:
    """Return a timezone-aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class CredentialSet:
    """Resolved AWS credentials.

    Attributes:
        access_key_id: AWS access key ID
        secret_access_key: AWS secret access key (sensitive)
        session_token: STS session token, set for role-assumed credentials
        expiration: Absolute expiry (None for long-lived credentials)
        source: Where the credentials came from ("cache", "assume-role", "default")
    """

    access_key_id: str
    secret_access_key: str
    session_token: Optional[str] = None
    expiration: Optional[datetime] = None
    source: str = "default"

    def __repr__(self) -> str:
        expiration = self.expiration.isoformat() if self.expiration else None
        return (
            f"CredentialSet(access_key_id={self.access_key_id[:8]}***, "
            f"source={self.source}, expiration={expiration})"
        )

    @property
    def is_temporary(self) -> bool:
        return self.session_token is not None

    def to_record(self) -> "CachedCredentialRecord":
        """Build the cacheable form of role-assumed credentials.

        Raises:
            ValueError: If the credentials have no session token or expiration
        """
        if self.session_token is None or self.expiration is None:
            raise ValueError("Only temporary credentials with an expiration can be cached")
        return CachedCredentialRecord(
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
            session_token=self.session_token,
            expiration=self.expiration,
        )


class CachedCredentialRecord(BaseModel):
    """On-disk credential record written after a successful role assumption."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    access_key_id: str = Field(..., min_length=1, description="AWS access key ID")
    secret_access_key: str = Field(..., min_length=1, repr=False, description="AWS secret access key")
    session_token: str = Field(..., min_length=1, repr=False, description="STS session token")
    expiration: datetime = Field(..., description="Absolute expiry of the credentials")

    @field_validator("expiration")
    @classmethod
    def normalize_expiration(cls, v: datetime) -> datetime:
        try:
            return to_utc(v)
        except OverflowError as e:
            raise ValueError(f"expiration is out of range in UTC: {e}") from e

    def is_valid_at(self, now: datetime) -> bool:
        """Return True if the record expires strictly after ``now``."""
        return self.expiration > to_utc(now)

    def to_credentials(self, source: str = "cache") -> CredentialSet:
        return CredentialSet(
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
            session_token=self.session_token,
            expiration=self.expiration,
            source=source,
        )
