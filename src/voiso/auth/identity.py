"""
Bearer token authentication.

Tokens are HS256 JWTs as issued by Supabase-style identity services: the
``sub`` claim is the user id and ``aud`` is "authenticated". Only
verification happens here; issuing tokens belongs to the identity
provider (issue_token() exists for the CLI and the tests).
"""
from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt

from voiso.core.config import AuthConfig
from voiso.core.logging import get_logger, verbose
from voiso.services.errors import Unauthenticated

_LOG = get_logger("voiso.auth")


@dataclass(frozen=True)
class Identity:
    """An authenticated caller."""
    user_id: str
    email: Optional[str] = None


class IdentityProvider(ABC):
    @abstractmethod
    def authenticate(self, token: str) -> Identity:
        """Return the caller's identity or raise Unauthenticated."""


class JwtIdentityProvider(IdentityProvider):
    """Verifies HMAC-signed JWTs with PyJWT."""

    def __init__(self, config: AuthConfig):
        self._config = config

    def authenticate(self, token: str) -> Identity:
        if not token:
            raise Unauthenticated("No authorization header")
        if not self._config.jwt_secret:
            verbose(_LOG, "auth_rejected", reason="jwt_secret_unset")
            raise Unauthenticated()

        options = {"require": ["sub", "exp"], "verify_aud": self._config.audience is not None}
        try:
            claims = jwt.decode(
                token,
                self._config.jwt_secret,
                algorithms=list(self._config.algorithms),
                audience=self._config.audience,
                options=options,
            )
        except jwt.PyJWTError as e:
            verbose(_LOG, "auth_rejected", reason=type(e).__name__)
            raise Unauthenticated() from e

        user_id = str(claims["sub"]).strip()
        if not user_id:
            raise Unauthenticated()
        return Identity(user_id=user_id, email=claims.get("email"))


def parse_bearer(header: Optional[str]) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header, None if absent."""
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def issue_token(
    config: AuthConfig,
    user_id: str,
    expires_in: int = 3600,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """Mint a token the JwtIdentityProvider accepts."""
    now = int(time.time())
    claims: Dict[str, Any] = {"sub": user_id, "iat": now, "exp": now + expires_in}
    if config.audience:
        claims["aud"] = config.audience
    if extra_claims:
        claims.update(extra_claims)
    return jwt.encode(claims, config.jwt_secret, algorithm=config.algorithms[0])
