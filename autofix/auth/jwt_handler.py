from datetime import datetime, timedelta, timezone

import jwt

from autofix.core import config

ACCESS_TOKEN_TYPE = "access"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    """Sign a bearer token whose subject is the user's email."""
    issued_at = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or config.JWT_EXPIRES_MINUTES)
    claims = {
        "sub": normalize_email(subject),
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    claims = jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise jwt.InvalidTokenError("Not an access token")
    return claims
