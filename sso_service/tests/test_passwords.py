"""
Tests for password hashing.
"""
import pytest

from sso_service.users.passwords import (
    check_password, get_password_hash, hash_password, password_too_long, verify_password,
)


def test_hash_is_not_plaintext_and_verifies():
    hashed = get_password_hash("TestPassword123", rounds=4)
    assert hashed != "TestPassword123"
    assert hashed.startswith("$2")
    assert verify_password("TestPassword123", hashed) is True
    assert verify_password("TestPassword124", hashed) is False
    assert verify_password("", hashed) is False


def test_hashes_are_salted():
    assert get_password_hash("same", rounds=4) != get_password_hash("same", rounds=4)


def test_default_work_factor_is_ten():
    assert get_password_hash("TestPassword123").startswith("$2b$10$")


def test_malformed_hash_does_not_verify():
    assert verify_password("whatever", "not-a-bcrypt-hash") is False


def test_password_length_limit():
    assert password_too_long("a" * 72) is False
    assert password_too_long("a" * 73) is True
    # Multi-byte characters count in bytes
    assert password_too_long("é" * 37) is True


@pytest.mark.asyncio
async def test_async_helpers_round_trip():
    hashed = await hash_password("TestPassword123", rounds=4)
    assert await check_password("TestPassword123", hashed) is True
    assert await check_password("nope", hashed) is False
