"""Tests for password hashing."""

from app.auth.passwords import hash_password, verify_password


def test_hash_is_bcrypt_and_salted() -> None:
    hashed = hash_password("mySecret123")
    assert hashed.startswith("$2")
    assert hashed != "mySecret123"
    assert hash_password("mySecret123") != hashed


def test_verify_correct_and_wrong() -> None:
    hashed = hash_password("mySecret123")
    assert verify_password("mySecret123", hashed) is True
    assert verify_password("wrong", hashed) is False


def test_long_password_truncated_to_72_bytes() -> None:
    """Anything past 72 bytes does not take part in the comparison."""
    base = "x" * 72
    hashed = hash_password(base + "tail")
    assert verify_password(base, hashed) is True
    assert verify_password(base + "other", hashed) is True


def test_multibyte_truncation_does_not_split_characters() -> None:
    password = "é" * 40  # 80 bytes in UTF-8
    assert verify_password(password, hash_password(password)) is True
