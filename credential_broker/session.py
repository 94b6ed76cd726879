"""boto3 session and client construction from resolved credentials."""

from typing import Any, Optional

import boto3
import structlog

from .config import ResolutionRequest, load_request
from .models import CredentialSet
from .resolver import CredentialResolver

logger = structlog.get_logger(__name__)


def build_session(credentials: CredentialSet, region: str) -> boto3.Session:
    """Create a boto3 session bound to ``credentials`` and ``region``."""
    return boto3.Session(
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        aws_session_token=credentials.session_token,
        region_name=region,
    )


def make_client(service_name: str, request: Optional[ResolutionRequest] = None) -> Any:
    """Resolve credentials and return a boto3 client for ``service_name``.

    Args:
        service_name: AWS service name (e.g., 's3', 'sts')
        request: Resolution request (defaults to one read from the environment)

    Raises:
        ConfigurationError: If a required setting is missing
        NetworkError: If role assumption fails
        InputError: If the MFA code cannot be read
    """
    request = request or load_request()
    credentials = CredentialResolver(request).resolve()
    session = build_session(credentials, request.region)

    logger.debug(
        "Creating AWS client",
        service=service_name,
        region=request.region,
        source=credentials.source,
    )
    return session.client(service_name)


def make_s3_client(request: Optional[ResolutionRequest] = None) -> Any:
    """Return an S3 client using resolved credentials."""
    return make_client("s3", request)
