"""Bearer JWT gate for protected routes.

Usage::

    @app.post("/generate-book")
    async def generate_book(claims: TokenClaims = Depends(require_auth)): ...
"""
from __future__ import annotations
import logging

import jwt
from fastapi import Depends, Header

from bookgen_proxy.common.config import Settings
from bookgen_proxy.common.errors import (
    InvalidSignatureOrExpired,
    MalformedHeader,
    MissingHeader,
    ServerMisconfigured,
    WrongTokenType,
)
from bookgen_proxy.common.schema import TokenClaims
from bookgen_proxy.serve.deps import get_settings

LOGGER = logging.getLogger("bookgen.auth")

HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]
AUTH_TOKEN_TYPE = "auth"


def parse_bearer(authorization: str | None) -> str:
    """Return the token from ``Bearer <token>``; exactly one space, two parts."""
    if not authorization:
        raise MissingHeader("no Authorization header")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise MalformedHeader(f"expected 'Bearer <token>', got {len(parts)} part(s)")
    return parts[1]


def verify_token(token: str, secret: str) -> TokenClaims:
    """Decode an HMAC-signed token and require ``type == "auth"``."""
    try:
        payload = jwt.decode(token, secret, algorithms=HMAC_ALGORITHMS)
    except jwt.InvalidTokenError as e:
        # PyJWT messages name the failing check, never the key
        raise InvalidSignatureOrExpired(f"{type(e).__name__}: {e}") from e
    except jwt.InvalidKeyError as e:
        # secret looks like a PEM or SSH key, not an HMAC secret
        raise ServerMisconfigured(f"token secret rejected by HMAC: {type(e).__name__}") from e

    claims = TokenClaims.from_payload(payload)
    if claims.type != AUTH_TOKEN_TYPE:
        raise WrongTokenType(f"token type is {claims.type!r}")
    return claims


def require_auth(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> TokenClaims:
    token = parse_bearer(authorization)
    if not settings.token_secret:
        raise ServerMisconfigured("POCKETBASE_TOKEN_SECRET environment variable not set")
    claims = verify_token(token, settings.token_secret)
    LOGGER.info("JWT valid for user ID: %s", claims.id)
    return claims
