from __future__ import annotations

import os
from datetime import timedelta
from typing import Any, Dict, Literal, Mapping, Optional

from jose import JWTError, jwt

from app.utils.clock import utcnow

TokenType = Literal["access", "refresh"]


# ---------------------------------------------------------------------
# JWT helpers
# ---------------------------------------------------------------------

def _load_jwt_settings() -> tuple[str, str]:
    """
    Load SECRET_KEY and ALGORITHM from environment variables.
    """
    secret_key = os.getenv("SECRET_KEY")
    algorithm = os.getenv("ALGORITHM", "HS256")

    if not secret_key or len(secret_key) < 32:
        raise RuntimeError("SECRET_KEY environment variable is not set (or too short; use 32+ chars)")

    return secret_key, algorithm


def _access_token_default_ttl() -> timedelta:
    minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
    return timedelta(minutes=minutes)


def create_access_token(
    *,
    subject: str,  # user id (uuid as str)
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Sign an access token in the format the auth subsystem issues.

    Tokens are issued by the auth subsystem; this helper exists so that
    tooling and tests can produce tokens the verifier below accepts.
    """
    secret_key, algorithm = _load_jwt_settings()

    if not subject or not isinstance(subject, str):
        raise ValueError("subject must be a non-empty string")

    now = utcnow()
    expire = now + (expires_delta or _access_token_default_ttl())

    payload: Dict[str, Any] = {
        "sub": subject,
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }

    if extra_claims:
        for k, v in extra_claims.items():
            if k in {"sub", "type", "iat", "exp"}:
                raise ValueError(f"extra_claims must not override reserved claim: {k}")
            payload[k] = v

    return jwt.encode(payload, secret_key, algorithm=algorithm)


def verify_token(
    token: str,
    *,
    expected_type: Optional[TokenType] = None,
) -> Dict[str, Any]:
    """
    Verify a JWT and return its decoded payload.

    Verifies:
      - signature validity
      - exp (expiry) validity (python-jose enforces exp by default)
      - required claims: sub, type
      - if expected_type provided: payload['type'] must match
    """
    secret_key, algorithm = _load_jwt_settings()

    if not token or not isinstance(token, str):
        raise ValueError("token must be a non-empty string")

    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        raise ValueError("Invalid token") from e

    sub = payload.get("sub")
    token_type = payload.get("type")

    if not sub or not isinstance(sub, str):
        raise ValueError("Invalid token: missing/invalid 'sub'")

    if token_type not in ("access", "refresh"):
        raise ValueError("Invalid token: missing/invalid 'type'")

    if expected_type is not None and token_type != expected_type:
        raise ValueError(f"Invalid token type: expected '{expected_type}', got '{token_type}'")

    return payload
