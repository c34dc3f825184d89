import pytest

from planner.identity_access.passwords import hash_password, verify_password


def test_hash_roundtrip_and_salting():
    first = hash_password("Secret123!")
    second = hash_password("Secret123!")
    assert first != second
    assert verify_password("Secret123!", first)
    assert not verify_password("secret123!", first)


def test_explicit_iterations_select_pbkdf2():
    encoded = hash_password("Secret123!", iterations=1000)
    assert encoded.startswith("pbkdf2:sha256:1000$")
    assert verify_password("Secret123!", encoded)


@pytest.mark.parametrize("stored", ["", "plain-text", "bogus$salt$hash", "pbkdf2_sha256$1$AA==$AA=="])
def test_malformed_stored_hash_never_verifies(stored):
    assert verify_password("Secret123!", stored) is False
