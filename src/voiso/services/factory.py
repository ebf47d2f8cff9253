"""
Service wiring.

build_services() turns Settings into the full object graph: database
engine, repository, object storage, speech provider, identity provider
and the services on top. The API and the CLI share one process-wide
bundle through get_services().
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from voiso.auth.identity import IdentityProvider, JwtIdentityProvider
from voiso.core.config import ServiceConfig, Settings
from voiso.core.logging import get_logger, info
from voiso.db.repository import Repository, SqlRepository
from voiso.db.session import create_db_engine, create_session_factory
from voiso.provider.client import HttpSpeechProvider, SpeechProvider
from voiso.services.generation_service import GenerationService
from voiso.services.quota import QuotaGuard
from voiso.services.voices import VoiceService
from voiso.storage.base import ObjectStorage
from voiso.storage.local import LocalObjectStorage

_LOG = get_logger("voiso.factory")


@dataclass
class ServiceBundle:
    """Everything a request handler needs."""
    config: ServiceConfig
    repository: Repository
    storage: ObjectStorage
    provider: SpeechProvider
    identity: IdentityProvider
    quota: QuotaGuard
    voices: VoiceService
    generation: GenerationService

    def health(self) -> Dict[str, Any]:
        try:
            db_ok = self.repository.ping()
        except Exception as e:
            info(_LOG, "health_db_unreachable", error=str(e))
            db_ok = False
        return {
            "ok": db_ok,
            "database": "ok" if db_ok else "unreachable",
            "provider_endpoint": self.provider.endpoint,
            "storage": str(getattr(self.storage, "base_dir", "-")),
        }

    def close(self) -> None:
        self.provider.close()


def build_services(
    settings: Settings,
    *,
    provider: Optional[SpeechProvider] = None,
    storage: Optional[ObjectStorage] = None,
    repository: Optional[Repository] = None,
) -> ServiceBundle:
    """
    Build the service graph from settings.

    Keyword arguments replace the default collaborator (tests pass a fake
    provider).

    Raises:
        ConfigValidationError: If the settings are invalid.
    """
    config = settings.get_service_config()

    if repository is None:
        engine = create_db_engine(config.database)
        repository = SqlRepository(create_session_factory(engine))
    if storage is None:
        storage = LocalObjectStorage(
            config.storage.base_dir,
            config.storage.signing_secret,
            config.storage.public_base_url,
        )
    if provider is None:
        provider = HttpSpeechProvider(config.provider)

    quota = QuotaGuard(repository, config.quota)
    bundle = ServiceBundle(
        config=config,
        repository=repository,
        storage=storage,
        provider=provider,
        identity=JwtIdentityProvider(config.auth),
        quota=quota,
        voices=VoiceService(repository, storage, config.storage),
        generation=GenerationService(repository, storage, provider, config, quota=quota),
    )
    info(_LOG, "services_ready", provider_endpoint=provider.endpoint)
    return bundle


_services: Optional[ServiceBundle] = None
_services_lock = threading.Lock()


def get_services(settings: Settings) -> ServiceBundle:
    """Thread-safe lazy singleton around build_services()."""
    global _services
    if _services is None:
        with _services_lock:
            if _services is None:
                _services = build_services(settings)
    return _services


def reset_services() -> None:
    """Drop the global bundle (tests, settings reload)."""
    global _services
    with _services_lock:
        if _services is not None:
            _services.close()
        _services = None
