"""Tests for session tokens, capability keys, and session resolution."""

import uuid

import jwt
import pytest

from app.core.config import settings
from app.core.security import (
    create_session_token,
    decode_session_token,
    extract_bearer_token,
    generate_public_key,
    verify_public_key,
)
from app.db.enums import Role
from app.services.session_service import SessionError, resolve_session, try_resolve_session

OLD_SECRET = "previous-signing-secret-0123456789abcdef"
NEW_SECRET = "current-signing-secret-0123456789abcdef"


def test_token_signed_with_previous_secret_still_decodes(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", OLD_SECRET)
    token = create_session_token(uuid.uuid4(), uuid.uuid4(), "admin", 1)

    monkeypatch.setattr(settings, "JWT_SECRET", NEW_SECRET)
    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", OLD_SECRET)
    assert decode_session_token(token)["role"] == "admin"

    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", "")
    with pytest.raises(jwt.InvalidTokenError):
        decode_session_token(token)


def test_extract_bearer_token():
    assert extract_bearer_token("Bearer abc") == "abc"
    assert extract_bearer_token("bearer   abc  ") == "abc"
    assert extract_bearer_token("Basic abc") is None
    assert extract_bearer_token("Bearer ") is None
    assert extract_bearer_token(None) is None


def test_public_key_verification():
    key = generate_public_key()

    assert len(key) >= 40
    assert verify_public_key(key, key)
    assert not verify_public_key(key + "x", key)
    assert not verify_public_key(None, key)
    assert not verify_public_key("", "")


def test_resolve_session(db, test_org, test_user):
    token = create_session_token(test_user.id, test_org.id, Role.ADMIN.value, test_user.token_version)

    session = resolve_session(db, token)

    assert session.user_id == test_user.id
    assert session.org_id == test_org.id
    assert session.role == Role.ADMIN


def test_bumped_token_version_revokes_session(db, test_org, test_user):
    token = create_session_token(test_user.id, test_org.id, Role.ADMIN.value, test_user.token_version)
    test_user.token_version += 1
    db.commit()

    with pytest.raises(SessionError) as exc_info:
        resolve_session(db, token)

    assert exc_info.value.status_code == 401
    assert try_resolve_session(db, token) is None


def test_token_for_org_without_membership_is_forbidden(db, test_user):
    token = create_session_token(test_user.id, uuid.uuid4(), Role.ADMIN.value, test_user.token_version)

    with pytest.raises(SessionError) as exc_info:
        resolve_session(db, token)

    assert exc_info.value.status_code == 403


def test_garbage_token_is_invalid(db):
    with pytest.raises(SessionError):
        resolve_session(db, "not-a-jwt")
    assert try_resolve_session(db, None) is None
