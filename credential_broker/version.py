"""Package version lookup."""

import os
from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION_NAME = "credential-broker"


def get_version() -> str:
    """
    Return the running version of credential-broker.

    Priority:
    1. CREDENTIAL_BROKER_VERSION environment variable (set by release builds)
    2. Installed distribution metadata
    3. "unknown" when the package is not installed

    Returns:
        str: Version string (e.g., "0.3.0")
    """
    if build_version := os.getenv("CREDENTIAL_BROKER_VERSION"):
        return build_version

    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "unknown"


__version__ = get_version()
