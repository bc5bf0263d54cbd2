from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from bson import ObjectId
from fastapi import Header

from .config import JWT_ALGORITHM, JWT_SECRET, TOKEN_EXPIRE_MINUTES
from .exceptions import InvalidTokenError, UnauthorizedError

BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def issue_token(user_id: str, expires_in: Optional[timedelta] = None) -> str:
    if expires_in is None:
        expires_in = timedelta(minutes=TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: Optional[str]) -> str:
    """Return the user id carried by ``token``.

    Accepts either a bare token or an ``Authorization: Bearer`` value.
    """
    if not token:
        raise UnauthorizedError()
    scheme, _, credentials = token.partition(" ")
    if credentials and scheme.lower() == "bearer":
        token = credentials.strip()
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise InvalidTokenError()
    user_id = payload.get("sub")
    if not user_id or not ObjectId.is_valid(user_id):
        raise InvalidTokenError()
    return user_id


def get_current_user_id(authorization: Optional[str] = Header(default=None)) -> str:
    return verify_token(authorization)
