"""File-backed cache for role-assumed credentials.

The cache holds a single JSON record. Anything that prevents using it (no
file, unreadable file, malformed or incompatible content, expired
credentials) is reported the same way: ``load()`` returns None.

This module does no locking. Processes sharing one cache file may both miss
and both assume the role; the last writer wins.
"""

import contextlib
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from .errors import CacheWriteError
from .models import CachedCredentialRecord

logger = structlog.get_logger(__name__)


class CredentialCache:
    """Single-record credential cache stored as JSON on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read(self) -> Optional[CachedCredentialRecord]:
        """Read the stored record regardless of its expiration.

        Returns:
            The parsed record, or None if the file is absent or unreadable
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No credential cache file", path=str(self.path))
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Credential cache unreadable", path=str(self.path), error=str(e))
            return None

        try:
            return CachedCredentialRecord.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "Ignoring malformed credential cache",
                path=str(self.path),
                error_count=e.error_count(),
            )
            return None

    def load(self, now: Optional[datetime] = None) -> Optional[CachedCredentialRecord]:
        """Return the cached record if it is still valid.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            The record if its expiration is strictly after ``now``, else None
        """
        record = self.read()
        if record is None:
            return None

        now = now or datetime.now(timezone.utc)
        if not record.is_valid_at(now):
            logger.info(
                "Cached credentials expired",
                path=str(self.path),
                expired_at=record.expiration.isoformat(),
            )
            return None

        return record

    def store(self, record: CachedCredentialRecord) -> None:
        """Replace the cache file with ``record``.

        The record is written to a sibling temporary file and renamed over the
        cache file, so readers never observe a partial write.

        Raises:
            CacheWriteError: If the file cannot be written
        """
        data = json.dumps(record.model_dump(mode="json"), indent=2)
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_path, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise CacheWriteError(
                f"Failed to write credential cache: {self.path}",
                suggestion="Check that the cache directory is writable or set CREDENTIAL_CACHE_FILE",
                details=str(e),
            ) from e

        logger.debug("Credential cache written", path=str(self.path), expires_at=record.expiration.isoformat())
