"""Unit tests for CredentialCache.

Tests round-tripping, expiry handling, and tolerance of corrupt cache files.
"""

import json
import os
import stat
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from credential_broker.cache import CredentialCache
from credential_broker.errors import CacheWriteError


class TestCacheLoad:
    """Test reading the cache."""

    def test_missing_file_returns_none(self, cache_path):
        cache = CredentialCache(cache_path)

        assert cache.load() is None

    def test_store_then_load_round_trip(self, cache_path, make_record):
        """Test that a record with a future expiration loads unchanged."""
        cache = CredentialCache(cache_path)
        record = make_record(expires_in=timedelta(hours=1))

        cache.store(record)
        loaded = cache.load()

        assert loaded == record

    def test_expired_record_returns_none(self, cache_path, make_record):
        cache = CredentialCache(cache_path)
        cache.store(make_record(expires_in=timedelta(seconds=-1)))

        assert cache.load() is None

    def test_record_expiring_now_returns_none(self, cache_path, make_record):
        """Test that equal-to-now counts as expired."""
        cache = CredentialCache(cache_path)
        record = make_record()
        cache.store(record)

        assert cache.load(now=record.expiration) is None
        assert cache.load(now=record.expiration - timedelta(seconds=1)) == record

    def test_naive_reference_time_treated_as_utc(self, cache_path, make_record):
        cache = CredentialCache(cache_path)
        record = make_record()
        cache.store(record)

        naive_now = (record.expiration - timedelta(minutes=1)).replace(tzinfo=None)

        assert cache.load(now=naive_now) == record

    @pytest.mark.parametrize(
        "content",
        [
            "",
            "{",
            '{"access_key_id": "ASIA", "secret_access_key": "secret", "session_token": "tok", "expir',
            "[]",
            '"just a string"',
            '{"access_key_id": "ASIA"}',
            '{"access_key_id": "ASIA", "secret_access_key": "s", "session_token": "t", "expiration": "soon"}',
            '{"access_key_id": "ASIA", "secret_access_key": "s", "session_token": "t", "expiration": "0001-01-01T00:00:00+01:00"}',
            '{"access_key_id": "ASIA", "secret_access_key": "s", "session_token": "t", "expiration": "9999-12-31T23:59:59-01:00"}',
        ],
        ids=[
            "empty",
            "open-brace",
            "truncated",
            "list",
            "string",
            "missing-fields",
            "bad-timestamp",
            "utc-underflow",
            "utc-overflow",
        ],
    )
    def test_malformed_content_returns_none(self, cache_path, content):
        """Test that corrupt cache files are treated as no cache."""
        cache_path.write_text(content, encoding="utf-8")
        cache = CredentialCache(cache_path)

        assert cache.load() is None

    def test_non_utf8_content_returns_none(self, cache_path):
        cache_path.write_bytes(b"\xff\xfe\x00garbage")

        assert CredentialCache(cache_path).load() is None

    def test_future_schema_returns_none(self, cache_path, make_record):
        """Test that a record with unknown fields is unreadable."""
        data = make_record().model_dump(mode="json")
        data["schema_version"] = 2
        cache_path.write_text(json.dumps(data), encoding="utf-8")

        assert CredentialCache(cache_path).load() is None

    def test_unix_timestamp_expiration_accepted(self, cache_path):
        expiration = datetime.now(timezone.utc) + timedelta(hours=1)
        cache_path.write_text(
            json.dumps(
                {
                    "access_key_id": "ASIA",
                    "secret_access_key": "secret",
                    "session_token": "token",
                    "expiration": int(expiration.timestamp()),
                }
            ),
            encoding="utf-8",
        )

        loaded = CredentialCache(cache_path).load()

        assert loaded is not None
        assert loaded.access_key_id == "ASIA"

    def test_read_ignores_expiration(self, cache_path, make_record):
        cache = CredentialCache(cache_path)
        record = make_record(expires_in=timedelta(hours=-1))
        cache.store(record)

        assert cache.read() == record
        assert cache.load() is None


class TestCacheStore:
    """Test writing the cache."""

    def test_store_writes_expected_fields(self, cache_path, make_record):
        record = make_record()

        CredentialCache(cache_path).store(record)
        data = json.loads(cache_path.read_text(encoding="utf-8"))

        assert set(data) == {"access_key_id", "secret_access_key", "session_token", "expiration"}
        assert data["access_key_id"] == record.access_key_id
        assert datetime.fromisoformat(data["expiration"].replace("Z", "+00:00")) == record.expiration

    def test_store_overwrites_existing_record(self, cache_path, make_record):
        cache = CredentialCache(cache_path)
        cache.store(make_record(access_key_id="ASIAOLD"))
        cache.store(make_record(access_key_id="ASIANEW"))

        assert cache.load().access_key_id == "ASIANEW"

    def test_store_replaces_corrupt_file(self, cache_path, make_record):
        cache_path.write_text("not json", encoding="utf-8")
        cache = CredentialCache(cache_path)

        cache.store(make_record())

        assert cache.load() is not None

    def test_store_creates_parent_directories(self, tmp_path, make_record):
        cache = CredentialCache(tmp_path / "nested" / "dir" / "creds.json")

        cache.store(make_record())

        assert cache.path.exists()

    def test_store_leaves_no_temp_file(self, cache_path, make_record):
        CredentialCache(cache_path).store(make_record())

        assert [p.name for p in cache_path.parent.iterdir()] == [cache_path.name]

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions only")
    def test_store_restricts_permissions(self, cache_path, make_record):
        CredentialCache(cache_path).store(make_record())

        mode = stat.S_IMODE(cache_path.stat().st_mode)
        assert mode & 0o077 == 0

    def test_store_failure_raises_cache_write_error(self, cache_path, make_record):
        cache = CredentialCache(cache_path)

        with patch("credential_broker.cache.os.replace", side_effect=PermissionError("read-only")):
            with pytest.raises(CacheWriteError) as exc_info:
                cache.store(make_record())

        assert str(cache_path) in exc_info.value.message
        assert "read-only" in exc_info.value.details
