"""IP Hashing: salted digest, production fail-fast, development fallback.

Tests:
    - hash_ip is the hex SHA-256 of "salt:ip" and deterministic
    - Production without salt raises at hash time and at startup check
    - Development without salt uses DEV_SALT and warns exactly once
"""

import hashlib
import logging

import pytest

from rebuzzle.core.errors import IpHashSaltMissingError
from rebuzzle.core.ip_hasher import DEV_SALT, IpHasher, hash_ip


def test_hash_ip_is_sha256_of_salt_and_ip():
    expected = hashlib.sha256(b"pepper:203.0.113.7").hexdigest()
    assert hash_ip("203.0.113.7", "pepper") == expected


def test_hash_ip_is_deterministic_and_salt_dependent():
    assert hash_ip("10.0.0.1", "a") == hash_ip("10.0.0.1", "a")
    assert hash_ip("10.0.0.1", "a") != hash_ip("10.0.0.1", "b")
    assert hash_ip("10.0.0.1", "a") != hash_ip("10.0.0.2", "a")


def test_digest_never_contains_raw_ip():
    digest = IpHasher("salt").hash("198.51.100.23")
    assert "198.51.100.23" not in digest
    assert len(digest) == 64


def test_configured_hasher_uses_salt():
    assert IpHasher("s3cret", "production").hash("1.2.3.4") == hash_ip("1.2.3.4", "s3cret")


def test_production_without_salt_raises():
    hasher = IpHasher(None, "production")
    assert not hasher.is_configured
    with pytest.raises(IpHashSaltMissingError):
        hasher.hash("1.2.3.4")


def test_ensure_configured_fails_fast_in_production():
    with pytest.raises(IpHashSaltMissingError):
        IpHasher("", "PRODUCTION").ensure_configured()


def test_development_without_salt_falls_back(caplog):
    hasher = IpHasher(None, "development")
    assert hasher.is_configured
    with caplog.at_level(logging.WARNING, logger="rebuzzle.core.ip_hasher"):
        first = hasher.hash("1.2.3.4")
        hasher.hash("5.6.7.8")
    assert first == hash_ip("1.2.3.4", DEV_SALT)
    warnings = [r for r in caplog.records if "IP_HASH_SALT not set" in r.getMessage()]
    assert len(warnings) == 1
