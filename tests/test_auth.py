from datetime import timedelta

import jwt
import pytest
from bson import ObjectId

from bookrental.auth import check_password, hash_password, issue_token, verify_token
from bookrental.config import JWT_ALGORITHM, JWT_SECRET
from bookrental.exceptions import InvalidTokenError, UnauthorizedError


def test_password_hash_round_trip():
    hashed = hash_password("pw1")
    assert check_password("pw1", hashed)
    assert not check_password("pw2", hashed)


def test_token_carries_user_id_and_expiry():
    user_id = str(ObjectId())
    token = issue_token(user_id)
    payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    assert payload["sub"] == user_id
    assert "exp" in payload
    assert verify_token(token) == user_id
    assert verify_token(f"Bearer {token}") == user_id


def test_missing_token():
    with pytest.raises(UnauthorizedError):
        verify_token(None)
    with pytest.raises(UnauthorizedError):
        verify_token("")


def test_expired_token():
    token = issue_token(str(ObjectId()), expires_in=timedelta(seconds=-1))
    with pytest.raises(InvalidTokenError):
        verify_token(token)


def test_token_signed_with_other_secret():
    token = jwt.encode({"sub": str(ObjectId())}, "other-secret", algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        verify_token(token)


def test_token_with_malformed_subject():
    token = issue_token("alice")
    with pytest.raises(InvalidTokenError):
        verify_token(token)
