"""Password hashing and strength rules."""

import pytest

from dianji.auth import password as password_module
from dianji.auth.password import (
    burn_password_check,
    hash_password,
    password_problem,
    verify_password,
)


def test_hash_and_verify():
    hashed = hash_password("abc12345", rounds=4)
    assert hashed.startswith("$2")
    assert verify_password("abc12345", hashed)
    assert not verify_password("abc12346", hashed)


def test_malformed_hash_never_matches():
    assert not verify_password("abc12345", "not-a-bcrypt-hash")


@pytest.mark.parametrize(
    "password, expected",
    [
        ("abc1234", "at least 8"),
        ("abcdefgh", "digit"),
        ("12345678", "letter"),
    ],
)
def test_weak_passwords(password, expected):
    assert expected in password_problem(password)


def test_strong_password_accepted():
    assert password_problem("abc12345") is None


def test_dummy_check_uses_configured_cost(monkeypatch):
    seen = []

    def fake_checkpw(password, hashed):
        seen.append(hashed)
        return False

    monkeypatch.setattr(password_module.bcrypt, "checkpw", fake_checkpw)
    burn_password_check("abc12345", rounds=4)
    burn_password_check("abc12345", rounds=5)

    assert seen[0].startswith(b"$2b$04$")
    assert seen[1].startswith(b"$2b$05$")
