"""Shared fixtures: in-memory database, temp storage, fake provider, API client."""
from __future__ import annotations

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from voiso.auth.identity import issue_token
from voiso.core.config import Settings
from voiso.provider.client import SpeechProvider
from voiso.provider.request_builder import ProviderRequest
from voiso.services.errors import ProviderError
from voiso.services.factory import build_services

USER_A = "11111111-1111-4111-8111-111111111111"
USER_B = "22222222-2222-4222-8222-222222222222"
FAKE_AUDIO = b"ID3\x03\x00fake-mp3-bytes" * 8


class FakeProvider(SpeechProvider):
    """Records requests; returns fixed audio or raises a configured error."""

    def __init__(self, audio: bytes = FAKE_AUDIO):
        self.audio = audio
        self.error: Optional[ProviderError] = None
        self.requests: List[ProviderRequest] = []

    @property
    def endpoint(self) -> str:
        return "http://provider.test/v1/audio/speech"

    def synthesize(self, request: ProviderRequest) -> bytes:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.audio


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(raw={
        "provider": {"base_url": "http://provider.test/v1"},
        "storage": {
            "base_dir": str(tmp_path / "storage"),
            "signing_secret": "test-signing-secret",
            "public_base_url": "http://testserver",
        },
        "auth": {"jwt_secret": "test-jwt-secret"},
        "database": {"url": "sqlite://"},
        "logging": {"level": 1},
    })


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def services(settings, provider):
    bundle = build_services(settings, provider=provider)
    yield bundle
    bundle.close()


@pytest.fixture
def make_voice(services):
    """Create a voice row; defaults to a designed voice owned by USER_A."""
    def _make(**fields):
        values = {
            "user_id": USER_A,
            "name": "Narrator",
            "type": "designed",
            "source_model": "Qwen3-TTS-VoiceDesign",
            "language": "en",
            "qwen_params": {"task_type": "VoiceDesign", "voice_description": "A calm narrator."},
        }
        values.update(fields)
        return services.repository.create_voice(**values)
    return _make


@pytest.fixture
def client(services):
    from voiso.api.dependencies import get_services
    from voiso.main import create_app

    app = create_app()
    app.dependency_overrides[get_services] = lambda: services
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(services):
    def _headers(user_id: str = USER_A) -> dict:
        token = issue_token(services.config.auth, user_id)
        return {"Authorization": f"Bearer {token}"}
    return _headers
