"""Caller authentication."""
from voiso.auth.identity import Identity, IdentityProvider, JwtIdentityProvider, issue_token, parse_bearer

__all__ = ["Identity", "IdentityProvider", "JwtIdentityProvider", "issue_token", "parse_bearer"]
