"""
Identity helpers: password hashing, JWT issue/validation and bearer parsing.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Mapping

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from clipstore.core.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_ISSUER = "clipstore-access"
ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def create_access_token(user_id: str, secret: str, expires_in: timedelta) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "iss": TOKEN_ISSUER,
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def validate_access_token(token: str, secret: str) -> str:
    """
    Validates a signed access token and returns the user id it was issued to.

    Raises:
        UnauthenticatedError: If the token is expired, tampered with or was
        not issued by this service
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM], issuer=TOKEN_ISSUER)
    except ExpiredSignatureError as e:
        raise UnauthenticatedError("Token has expired", detail=str(e)) from e
    except JWTError as e:
        raise UnauthenticatedError(detail=str(e)) from e

    user_id = claims.get("sub")
    if not user_id:
        raise UnauthenticatedError(detail="token has no subject")
    return user_id


def get_bearer_token(headers: Mapping[str, str]) -> str:
    auth_header = headers.get("Authorization") or headers.get("authorization")
    if not auth_header:
        raise UnauthenticatedError("Couldn't find JWT", detail="no Authorization header")

    scheme, _, token = auth_header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthenticatedError("Couldn't find JWT", detail="malformed Authorization header")
    return token.strip()
