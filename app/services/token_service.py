"""JWT access token validation (ES256).

progress-service does not log anyone in: the learner id and roles come
from a bearer token issued by the auth service and verified here against
the issuer's public key (JWT_PUBLIC_KEY).

Without JWT_PUBLIC_KEY (dev and test only, see app.core.config) an
ephemeral key pair is generated on import so tokens can be minted locally
with create_access_token.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "auth-service"
AUDIENCE = "progress-service"
ACCESS_TOKEN_TTL_MIN = 15


def load_public_key(pem: str) -> ec.EllipticCurvePublicKey:
    """Parse the issuer's PEM public key.  Raises ValueError if unusable."""
    key = serialization.load_pem_public_key(pem.encode("utf-8"))
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError("JWT_PUBLIC_KEY must be an EC public key for ES256")
    return key


if SETTINGS.jwt_public_key:
    _private_key: ec.EllipticCurvePrivateKey | None = None
    _public_key = load_public_key(SETTINGS.jwt_public_key)
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(
    *,
    sub: str,
    scope: str = "",
    roles: list[str] | None = None,
) -> str:
    """Mint a token with the local dev key (sub, iss, aud, exp, iat, jti, scope, roles).

    Raises RuntimeError when the service verifies an external issuer's
    tokens: it holds no signing key then.
    """
    if _private_key is None:
        raise RuntimeError("No signing key: tokens come from the configured issuer")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "scope": scope,
        "roles": roles or ["user"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(
    token: str, *, public_key: ec.EllipticCurvePublicKey | None = None
) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.
    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        public_key or _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
