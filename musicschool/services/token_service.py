"""Bearer token validation (ES256 JWT).

The service only verifies tokens and reads ``sub`` (the caller's profile
id) and ``roles``.  With AUTH_PUBLIC_KEY_FILE set, tokens are checked
against the issuer's PEM public key.  Without it the verifier trusts an
ephemeral key pair generated on import, which only create_access_token
(local development and tests) can sign for.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from musicschool.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "musicschool-auth"
AUDIENCE = "musicschool-contracts"
ACCESS_TOKEN_TTL_MIN = 15


def load_public_key(path: str | Path) -> ec.EllipticCurvePublicKey:
    """Read a PEM-encoded EC public key; anything else is a ValueError."""
    key = serialization.load_pem_public_key(Path(path).read_bytes())
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError(f"{path} does not hold an EC public key")
    return key


# Dev/test: ephemeral EC key pair generated on import.
_private_key = ec.generate_private_key(ec.SECP256R1())
if SETTINGS.auth_public_key_file:
    _public_key = load_public_key(SETTINGS.auth_public_key_file)
else:
    _public_key = _private_key.public_key()


def create_access_token(*, sub: str, roles: list[str] | None = None) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or [],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature, issuer, audience and expiry; return the claims.

    The algorithm is pinned to ES256.
    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat"]},
    )
