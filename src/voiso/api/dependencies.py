"""
FastAPI Dependency Injection Providers.

    get_settings()      settings loaded once from VOISO_SETTINGS
                        (default config/settings.yaml)
    get_services()      the process-wide ServiceBundle
    get_current_user()  the caller's Identity from the bearer token

Tests replace get_services through ``app.dependency_overrides``.
"""
from __future__ import annotations

import os
import uuid
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from voiso.auth.identity import Identity, parse_bearer
from voiso.core.config import Settings, load_settings
from voiso.core.logging import set_request_id
from voiso.services.errors import Unauthenticated
from voiso.services.factory import ServiceBundle, get_services as _get_services


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache application settings."""
    return load_settings(os.getenv("VOISO_SETTINGS", "config/settings.yaml"), missing_ok=True)


def get_services(settings: Settings = Depends(get_settings)) -> ServiceBundle:
    return _get_services(settings)


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    services: ServiceBundle = Depends(get_services),
) -> Identity:
    """
    Authenticate the caller.

    Raises:
        Unauthenticated: Missing, malformed or invalid bearer token.
    """
    if not authorization:
        raise Unauthenticated("No authorization header")
    token = parse_bearer(authorization)
    if token is None:
        raise Unauthenticated()
    return services.identity.authenticate(token)


def new_request_id() -> str:
    """Short request id, bound to the logging context."""
    rid = str(uuid.uuid4())[:12]
    set_request_id(rid)
    return rid
