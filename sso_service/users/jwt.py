"""
JWT token handling for authentication.

This module provides functionality for:
- Creating signed access tokens for a user record
- Decoding access tokens back into their claims
"""
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import PyJWTError
from pydantic import BaseModel

from sso_service.exceptions import UnauthorizedError
from sso_service.users.models import UserRecord

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60

# Claims copied from the user record. Nothing else about the user goes in.
TOKEN_CLAIMS = ("id", "name", "email", "roles")


class Token(BaseModel):
    """Token response model."""
    accessToken: str
    tokenType: str = "bearer"
    expiresAt: int  # Unix timestamp


def build_claims(record: UserRecord) -> Dict[str, Any]:
    """Claim set for a user: id, name, email and roles."""
    return {
        "id": record.id,
        "name": record.name,
        "email": record.email,
        "roles": list(record.roles),
    }


def create_access_token(
    record: UserRecord,
    secret_key: str,
    algorithm: str = ALGORITHM,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token for a user.

    Args:
        record: The authenticated user
        secret_key: HMAC secret used for signing
        algorithm: JWT signing algorithm
        expires_delta: Custom expiration time, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    to_encode = build_claims(record)
    to_encode.update({
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)),
    })
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def create_token(
    record: UserRecord,
    secret_key: str,
    algorithm: str = ALGORITHM,
    expire_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES
) -> Token:
    """Create an access token plus the metadata returned to clients."""
    access_token = create_access_token(
        record,
        secret_key,
        algorithm=algorithm,
        expires_delta=timedelta(minutes=expire_minutes)
    )
    return Token(
        accessToken=access_token,
        tokenType="bearer",
        expiresAt=int(time.time()) + expire_minutes * 60
    )


def decode_access_token(token: str, secret_key: str, algorithm: str = ALGORITHM) -> Dict[str, Any]:
    """
    Verify a JWT token and return its claims.

    Raises:
        UnauthorizedError: If the token is malformed, tampered with or expired
    """
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except PyJWTError as e:
        raise UnauthorizedError("Could not validate credentials") from e
