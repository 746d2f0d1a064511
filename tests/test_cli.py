"""CLI commands that need no running server or database."""

import json

from click.testing import CliRunner

from dianji.auth.invite import INVITE_ALPHABET, INVITE_CODE_LENGTH
from dianji.auth.jwt import issue_access_token
from dianji.cli.main import cli

from conftest import TEST_SECRET


def test_invite_code():
    result = CliRunner().invoke(cli, ["invite-code"])
    assert result.exit_code == 0
    code = result.output.strip()
    assert len(code) == INVITE_CODE_LENGTH
    assert set(code) <= set(INVITE_ALPHABET)


def test_token_decode_valid():
    token = issue_access_token(
        {"account_id": "acc-1", "family_id": "fam-1", "role": "child"}, TEST_SECRET
    )
    result = CliRunner().invoke(
        cli, ["token", "decode", token], env={"DIANJI_JWT_SECRET": TEST_SECRET}
    )
    assert result.exit_code == 0
    claims = json.loads(result.output)
    assert claims["account_id"] == "acc-1"
    assert claims["role"] == "child"
    assert "expires_at" in claims


def test_token_decode_wrong_secret():
    token = issue_access_token(
        {"account_id": "acc-1", "family_id": "fam-1", "role": "child"}, TEST_SECRET
    )
    result = CliRunner().invoke(
        cli, ["token", "decode", token], env={"DIANJI_JWT_SECRET": "another-secret-0123456789"}
    )
    assert result.exit_code == 1
