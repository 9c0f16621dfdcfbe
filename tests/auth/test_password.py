"""Password hashing and strength policy."""

import pytest

from goal_assistant.auth.password import (
    PasswordStrengthError,
    hash_password,
    validate_password_strength,
    verify_password,
)


class TestHashing:
    def test_hash_is_argon2id(self):
        hashed = hash_password("SecureP@ss1")
        assert hashed.startswith("$argon2id$")
        assert verify_password("SecureP@ss1", hashed)

    def test_wrong_password(self):
        assert not verify_password("wrong", hash_password("SecureP@ss1"))

    def test_garbage_hash(self):
        assert not verify_password("SecureP@ss1", "not-a-hash")


class TestStrength:
    def test_strong_password(self):
        validate_password_strength("SecureP@ss1")

    @pytest.mark.parametrize(
        ("password", "message"),
        [
            ("", "empty"),
            ("Ab1", "at least 8"),
            ("A1" + "b" * 127, "exceed 128"),
            ("lowercase1", "uppercase"),
            ("UPPERCASE1", "lowercase"),
            ("NoDigitsHere", "digit"),
        ],
    )
    def test_weak_passwords(self, password, message):
        with pytest.raises(PasswordStrengthError, match=message):
            validate_password_strength(password)

    def test_strength_error_is_value_error(self):
        assert issubclass(PasswordStrengthError, ValueError)
