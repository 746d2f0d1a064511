"""Invite code generation and expiry checks."""

from datetime import datetime, timedelta, timezone

from dianji.auth.invite import (
    INVITE_ALPHABET,
    generate_invite_code,
    invite_expired,
    invite_expiry,
)

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def test_invite_code_shape():
    for _ in range(200):
        code = generate_invite_code()
        assert len(code) == 8
        assert set(code) <= set(INVITE_ALPHABET)


def test_alphabet_excludes_ambiguous_characters():
    for ch in "01IO":
        assert ch not in INVITE_ALPHABET


def test_expiry_is_seven_days_out():
    assert invite_expiry(7, NOW) == NOW + timedelta(days=7)


def test_invite_expired_boundaries():
    assert not invite_expired(NOW + timedelta(seconds=1), NOW)
    assert invite_expired(NOW, NOW)
    assert invite_expired(NOW - timedelta(seconds=1), NOW)
    assert not invite_expired(None, NOW)


def test_naive_timestamps_are_treated_as_utc():
    naive = (NOW - timedelta(seconds=1)).replace(tzinfo=None)
    assert invite_expired(naive, NOW)
