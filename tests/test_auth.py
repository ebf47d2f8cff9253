"""
Tests for bearer-token authentication.

Tests cover:
- Bearer header parsing
- Valid tokens -> Identity
- Expired, wrong-secret, wrong-audience and sub-less tokens rejected
- No secret configured -> everything rejected
"""
import time

import jwt
import pytest

from voiso.auth.identity import JwtIdentityProvider, issue_token, parse_bearer
from voiso.core.config import AuthConfig
from voiso.services.errors import Unauthenticated
from conftest import USER_A

CONFIG = AuthConfig(jwt_secret="s3cret")


class TestParseBearer:
    @pytest.mark.parametrize("header,token", [
        ("Bearer abc", "abc"),
        ("bearer abc", "abc"),
        ("  Bearer   abc  ", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, header, token):
        assert parse_bearer(header) == token


class TestJwtIdentityProvider:
    def test_valid_token(self):
        identity = JwtIdentityProvider(CONFIG).authenticate(
            issue_token(CONFIG, USER_A, extra_claims={"email": "a@example.com"})
        )
        assert identity.user_id == USER_A
        assert identity.email == "a@example.com"

    def test_empty_token(self):
        with pytest.raises(Unauthenticated) as exc:
            JwtIdentityProvider(CONFIG).authenticate("")
        assert exc.value.message == "No authorization header"

    def test_expired(self):
        token = issue_token(CONFIG, USER_A, expires_in=-10)
        with pytest.raises(Unauthenticated):
            JwtIdentityProvider(CONFIG).authenticate(token)

    def test_wrong_secret(self):
        token = issue_token(AuthConfig(jwt_secret="other"), USER_A)
        with pytest.raises(Unauthenticated):
            JwtIdentityProvider(CONFIG).authenticate(token)

    def test_wrong_audience(self):
        token = issue_token(AuthConfig(jwt_secret="s3cret", audience="someone-else"), USER_A)
        with pytest.raises(Unauthenticated):
            JwtIdentityProvider(CONFIG).authenticate(token)

    def test_missing_sub(self):
        now = int(time.time())
        token = jwt.encode({"exp": now + 60, "aud": "authenticated"}, "s3cret", algorithm="HS256")
        with pytest.raises(Unauthenticated):
            JwtIdentityProvider(CONFIG).authenticate(token)

    def test_audience_optional(self):
        config = AuthConfig(jwt_secret="s3cret", audience=None)
        now = int(time.time())
        token = jwt.encode({"sub": USER_A, "exp": now + 60}, "s3cret", algorithm="HS256")
        assert JwtIdentityProvider(config).authenticate(token).user_id == USER_A

    def test_no_secret_rejects_everything(self):
        token = issue_token(CONFIG, USER_A)
        with pytest.raises(Unauthenticated):
            JwtIdentityProvider(AuthConfig(jwt_secret="")).authenticate(token)
