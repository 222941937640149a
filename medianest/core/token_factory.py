"""HS256 JWT encode/decode for MediaNest bearer tokens.

Tokens carry the caller's id (``sub``) and role (``admin``, ``editor`` or
``viewer``). There is no user table; the role claim is authoritative.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

ISSUER = "medianest"
ROLES = ("admin", "editor", "viewer")


@dataclass(frozen=True)
class TokenPayload:
    sub: str
    role: str
    exp: datetime


def create_token(
    subject: str,
    role: str,
    secret: str,
    algorithm: str = "HS256",
    expires_hours: int = 24,
) -> str:
    """Sign a token for *subject* with *role*.

    Raises:
        ValueError: unsupported algorithm or unknown role.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")

    issued = int(time.time())
    claims = {
        "sub": subject,
        "role": role,
        "iat": issued,
        "exp": issued + expires_hours * 3600,
        "iss": ISSUER,
    }
    head = _b64encode(json.dumps({"alg": "HS256", "typ": "JWT"}).encode())
    body = _b64encode(json.dumps(claims).encode())
    signing_input = head + b"." + body
    return (signing_input + b"." + _b64encode(_sign(secret, signing_input))).decode()


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[TokenPayload]:
    """Verify *token* and return its payload.

    Returns None for a bad signature, wrong issuer, unknown role, expiry or
    any malformed input; callers decide what absence means.
    """
    if algorithm != "HS256":
        return None
    try:
        head, body, signature = token.encode().split(b".")
        if not hmac.compare_digest(_sign(secret, head + b"." + body), _b64decode(signature)):
            return None

        claims = json.loads(_b64decode(body))
        if claims.get("iss") != ISSUER or claims.get("role") not in ROLES:
            return None
        exp = int(claims.get("exp", 0))
        if time.time() > exp:
            return None

        return TokenPayload(
            sub=str(claims.get("sub", "")),
            role=claims["role"],
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
    except (json.JSONDecodeError, KeyError, ValueError, TypeError, AttributeError):
        return None


def _sign(secret: str, signing_input: bytes) -> bytes:
    return hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()


def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    return base64.urlsafe_b64decode(data + b"=" * (-len(data) % 4))
