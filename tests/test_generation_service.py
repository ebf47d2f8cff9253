"""
Tests for the generation pipeline.

Tests cover:
- Happy path per voice type (designed, default, cloned)
- Rejections create no rows, call no provider, write no storage
- Provider failure writes nothing
- History insert and counter bump failures are swallowed
- Counter bump deferred until run_pending()
- History listing re-signs URLs
"""
import pytest

from voiso.services.errors import (
    Forbidden,
    NotFound,
    ProviderError,
    QuotaExceeded,
    ValidationError,
)
from conftest import FAKE_AUDIO, USER_A, USER_B


def stored_files(settings_dir):
    return [p for p in settings_dir.rglob("*") if p.is_file()]


@pytest.fixture
def storage_dir(services):
    return services.storage.base_dir


class TestHappyPath:
    def test_designed_voice(self, services, provider, make_voice, storage_dir):
        voice = make_voice()
        result = services.generation.generate(USER_A, {"voice_id": voice.id, "text": "Hello", "language": "en"})

        assert result.audio_url.startswith("http://testserver/v1/storage/generations/")
        assert result.generation_id is not None
        assert len(provider.requests) == 1
        payload = provider.requests[0].to_payload()
        assert payload["task_type"] == "VoiceDesign"
        assert payload["instructions"] == "A calm narrator."
        assert payload["language"] == "English"

        files = stored_files(storage_dir)
        assert len(files) == 1
        assert files[0].read_bytes() == FAKE_AUDIO

    def test_default_voice_usable_by_anyone(self, services, provider):
        services.voices.seed_defaults()
        vivian = next(v for v in services.voices.list_defaults() if v.name == "Vivian")

        services.generation.generate(USER_B, {"voice_id": vivian.id, "text": "Hi"})

        payload = provider.requests[0].to_payload()
        assert payload["voice"] == "Vivian"
        assert payload["language"] == "Auto"

    def test_cloned_voice_gets_signed_reference(self, services, provider):
        voice = services.voices.clone(USER_A, "Me", "en", b"RIFFdata", "me.wav", "audio/wav")
        services.generation.generate(USER_A, {"voice_id": voice.id, "text": "Hi"})

        ref = provider.requests[0].to_payload()["ref_audio"]
        assert ref.startswith("http://testserver/v1/storage/voices/")
        assert "signature=" in ref

    def test_response_shape(self, services, make_voice):
        result = services.generation.generate(USER_A, {"voice_id": make_voice().id, "text": "Hi"})
        body = result.to_response()
        assert set(body) == {"success", "audio_url", "generation_id"}
        assert body["success"] is True


class TestRejections:
    def assert_nothing_written(self, services, provider, storage_dir):
        assert provider.requests == []
        assert services.quota.usage(USER_A).used == 0
        assert stored_files(storage_dir) == []

    def test_invalid_payload(self, services, provider, storage_dir):
        with pytest.raises(ValidationError) as exc:
            services.generation.generate(USER_A, {"text": ""})
        assert "voice_id is required" in exc.value.errors
        self.assert_nothing_written(services, provider, storage_dir)

    def test_unknown_voice(self, services, provider, storage_dir):
        with pytest.raises(NotFound):
            services.generation.generate(USER_A, {"voice_id": "3f2b8c1e-9d4a-4e7b-8c6d-1a2b3c4d5e6f", "text": "Hi"})
        self.assert_nothing_written(services, provider, storage_dir)

    def test_other_users_voice(self, services, provider, make_voice, storage_dir):
        voice = make_voice(user_id=USER_B)
        with pytest.raises(Forbidden):
            services.generation.generate(USER_A, {"voice_id": voice.id, "text": "Hi"})
        self.assert_nothing_written(services, provider, storage_dir)

    def test_quota_checked_before_voice(self, services, provider, make_voice, storage_dir):
        voice = make_voice()
        for _ in range(20):
            services.repository.insert_generation(
                user_id=USER_A, voice_id=voice.id, text="x", language="en", audio_url=None,
            )
        with pytest.raises(QuotaExceeded):
            services.generation.generate(USER_A, {"voice_id": voice.id, "text": "Hi"})
        assert provider.requests == []
        assert services.quota.usage(USER_A).used == 20

    def test_provider_failure_writes_nothing(self, services, provider, make_voice, storage_dir):
        provider.error = ProviderError("Speech provider error: 500 - boom", status=500, body="boom")
        with pytest.raises(ProviderError):
            services.generation.generate(USER_A, {"voice_id": make_voice().id, "text": "Hi"})
        assert services.quota.usage(USER_A).used == 0
        assert stored_files(storage_dir) == []

    def test_empty_audio_is_provider_error(self, services, provider, make_voice):
        provider.audio = b""
        with pytest.raises(ProviderError):
            services.generation.generate(USER_A, {"voice_id": make_voice().id, "text": "Hi"})


class TestBookkeeping:
    def test_counter_bumped_only_when_pending_runs(self, services, make_voice):
        result = services.generation.generate(USER_A, {"voice_id": make_voice().id, "text": "Hi"})
        assert services.repository.get_profile(USER_A) is None

        result.run_pending()
        assert services.repository.get_profile(USER_A).generation_count == 1

        result.run_pending()
        assert services.repository.get_profile(USER_A).generation_count == 1

    def test_history_failure_swallowed(self, services, make_voice, monkeypatch):
        voice = make_voice()

        def boom(**kwargs):
            raise RuntimeError("db down")

        monkeypatch.setattr(services.repository, "insert_generation", boom)
        result = services.generation.generate(USER_A, {"voice_id": voice.id, "text": "Hi"})
        assert result.generation_id is None
        assert result.audio_url

    def test_counter_failure_swallowed(self, services, make_voice, monkeypatch):
        result = services.generation.generate(USER_A, {"voice_id": make_voice().id, "text": "Hi"})

        def boom(user_id):
            raise RuntimeError("db down")

        monkeypatch.setattr(services.repository, "increment_generation_count", boom)
        result.run_pending()


class TestHistory:
    def test_newest_first_with_voice(self, services, make_voice):
        voice = make_voice()
        for text in ("one", "two", "three"):
            services.generation.generate(USER_A, {"voice_id": voice.id, "text": text})

        items = services.generation.history(USER_A, limit=2)
        assert [i["text"] for i in items] == ["three", "two"]
        assert items[0]["voice"]["id"] == voice.id
        assert "signature=" in items[0]["audio_url"]

    def test_only_own_history(self, services, make_voice):
        services.generation.generate(USER_A, {"voice_id": make_voice().id, "text": "mine"})
        assert services.generation.history(USER_B) == []


class TestLanguage:
    def test_omitted_language_uses_voice_language_for_provider_only(self, services, provider, make_voice):
        voice = make_voice(language="ja")
        services.generation.generate(USER_A, {"voice_id": voice.id, "text": "Hi"})

        assert provider.requests[0].language == "Japanese"
        assert services.generation.history(USER_A)[0]["language"] == "auto"

    def test_explicit_language_sent(self, services, provider, make_voice):
        voice = make_voice(language="ja")
        services.generation.generate(USER_A, {"voice_id": voice.id, "text": "Hi", "language": "auto"})
        assert provider.requests[0].language == "Auto"
