from datetime import timedelta

import jwt
import pytest

from subtracker.services.credential_ledger import CredentialLedger

from conftest import SECRET


@pytest.fixture
def user(users, hasher):
    return users.create(name="A", email="a@x.com", password_hash=hasher.hash("secret1"))


def test_session_token_round_trip(ledger, user):
    identity = ledger.verify_session_token(ledger.issue_session_token(user))
    assert identity is not None
    assert (identity.id, identity.email, identity.name) == (user.id, "a@x.com", "A")


def test_missing_secret_is_fatal(users):
    with pytest.raises(RuntimeError):
        CredentialLedger(users, "")


@pytest.mark.parametrize("token", [None, "", "not-a-jwt", "a.b.c"])
def test_garbage_tokens_are_rejected(ledger, token):
    assert ledger.verify_session_token(token) is None


def test_token_signed_with_another_secret_is_rejected(users, ledger, user, clock):
    other = CredentialLedger(users, "another-secret", clock=clock)
    assert ledger.verify_session_token(other.issue_session_token(user)) is None


def test_tampered_token_is_rejected(ledger, user):
    token = ledger.issue_session_token(user)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[:-2] + ("AA" if signature[-2:] != "AA" else "BB")])
    assert ledger.verify_session_token(tampered) is None


def test_token_expires_after_session_ttl(ledger, user, clock):
    token = ledger.issue_session_token(user)
    clock.advance(days=7, seconds=-1)
    assert ledger.verify_session_token(token) is not None
    clock.advance(seconds=1)
    assert ledger.verify_session_token(token) is None


def test_token_without_integer_id_is_rejected(ledger, clock):
    token = jwt.encode(
        {"id": "1", "email": "a@x.com", "exp": clock() + timedelta(hours=1)}, SECRET, algorithm="HS256"
    )
    assert ledger.verify_session_token(token) is None


def test_reset_token_shape(ledger, clock):
    reset = ledger.issue_reset_token()
    assert len(reset.value) == 64
    int(reset.value, 16)
    assert reset.expires_at == clock() + timedelta(hours=1)
    assert ledger.issue_reset_token().value != reset.value


def test_validate_reset_token(ledger, users, user, clock):
    reset = ledger.issue_reset_token()
    users.set_reset_token(user.id, reset.value, reset.expires_at)

    assert ledger.validate_reset_token("a@x.com", reset.value).id == user.id
    assert ledger.validate_reset_token("a@x.com", "0" * 64) is None
    assert ledger.validate_reset_token("nobody@x.com", reset.value) is None
    assert ledger.validate_reset_token("A@X.COM", reset.value) is None

    clock.advance(hours=1)
    assert ledger.validate_reset_token("a@x.com", reset.value) is None


def test_user_without_pending_reset_never_validates(ledger, user):
    assert ledger.validate_reset_token("a@x.com", "0" * 64) is None
    assert ledger.validate_reset_token("a@x.com", "") is None


def test_reset_token_is_consumed_once(ledger, users, user, hasher, clock):
    reset = ledger.issue_reset_token()
    users.set_reset_token(user.id, reset.value, reset.expires_at)

    assert users.consume_reset_token(user.id, reset.value, hasher.hash("newpass1"), clock())
    assert not users.consume_reset_token(user.id, reset.value, hasher.hash("newpass2"), clock())

    stored = users.get_by_id(user.id)
    assert stored.reset_password_token is None
    assert stored.reset_password_expires is None
    assert hasher.verify("newpass1", stored.password_hash)
