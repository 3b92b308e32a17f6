"""
Tests for the local identity provider (bcrypt credentials + JWT tokens).
"""

from datetime import timedelta

import jwt
import pytest

from medhistory.errors import Unauthenticated, ValidationFailure
from medhistory.identity import ALGORITHM, IdentityProvider


@pytest.fixture
def identity(engine):
    return IdentityProvider(engine, secret_key="test-secret")


def test_sign_up_then_verify(identity):
    session = identity.sign_up("ana@example.com", "secreto1")
    assert identity.verify(session.access_token) == session.user_id
    claims = jwt.decode(session.access_token, "test-secret", algorithms=[ALGORITHM])
    assert claims["email"] == "ana@example.com"
    assert claims["type"] == "access"


def test_sign_in(identity):
    created = identity.sign_up("ana@example.com", "secreto1")
    session = identity.sign_in("ana@example.com", "secreto1")
    assert session.user_id == created.user_id


def test_sign_in_wrong_password(identity):
    identity.sign_up("ana@example.com", "secreto1")
    with pytest.raises(Unauthenticated, match="Invalid email or password"):
        identity.sign_in("ana@example.com", "otra-clave")


def test_sign_in_unknown_email(identity):
    with pytest.raises(Unauthenticated):
        identity.sign_in("nadie@example.com", "secreto1")


def test_duplicate_email(identity):
    identity.sign_up("ana@example.com", "secreto1")
    with pytest.raises(ValidationFailure, match="already registered"):
        identity.sign_up("ana@example.com", "secreto2")


def test_sign_up_rejects_password_over_bcrypt_limit(identity):
    with pytest.raises(ValidationFailure, match="at most 72 bytes"):
        identity.sign_up("ana@example.com", "p" * 100)
    # the address is still free afterwards
    identity.sign_up("ana@example.com", "p" * 72)


def test_sign_in_with_overlong_password_is_rejected(identity):
    identity.sign_up("ana@example.com", "p" * 72)
    with pytest.raises(Unauthenticated, match="Invalid email or password"):
        identity.sign_in("ana@example.com", "p" * 100)


def test_verify_rejects_garbage_and_missing(identity):
    with pytest.raises(Unauthenticated, match="Invalid token"):
        identity.verify("not-a-jwt")
    with pytest.raises(Unauthenticated, match="missing"):
        identity.verify("")


def test_verify_rejects_other_secret(engine, identity):
    other = IdentityProvider(engine, secret_key="other-secret")
    session = other.sign_up("ana@example.com", "secreto1")
    with pytest.raises(Unauthenticated):
        identity.verify(session.access_token)


def test_verify_rejects_expired_token(engine):
    identity = IdentityProvider(engine, secret_key="s", access_ttl=timedelta(seconds=-5))
    session = identity.sign_up("ana@example.com", "secreto1")
    with pytest.raises(Unauthenticated, match="expired"):
        identity.verify(session.access_token)


def test_refresh_token_is_not_a_bearer_token(identity):
    session = identity.sign_up("ana@example.com", "secreto1")
    with pytest.raises(Unauthenticated):
        identity.verify(session.refresh_token)


def test_refresh_issues_new_pair(identity):
    session = identity.sign_up("ana@example.com", "secreto1")
    renewed = identity.refresh(session.refresh_token)
    assert renewed.user_id == session.user_id
    assert identity.verify(renewed.access_token) == session.user_id
    with pytest.raises(Unauthenticated):
        identity.refresh(session.access_token)
