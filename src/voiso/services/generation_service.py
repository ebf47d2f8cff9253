"""
Generation Service: the synthesis request pipeline.

GenerationService.generate() is the single entry point used by the HTTP
route and the CLI. Stages run strictly in order:

    1. Validate the payload (every violated rule reported)
    2. Check the rolling quota
    3. Resolve the voice and check the caller may use it
    4. Build the provider request for the voice type
    5. Call the speech provider
    6. Store the audio and sign a time-limited URL
    7. Insert the generation row (best effort)
    8. Bump the profile counter (deferred, best effort)

Stages 1-6 fail fast: any error aborts the request before anything is
written. Once audio is stored the request succeeds, and a failing row
insert or counter bump is only logged. The counter bump is returned as a
pending task on the result so the HTTP layer can run it after the
response is sent.

Example:
    >>> result = services.generation.generate(user_id, {"voice_id": vid, "text": "Hi"})
    >>> result.to_response()
    {'success': True, 'audio_url': 'http://.../v1/storage/generations/...', 'generation_id': '...'}
    >>> result.run_pending()
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from voiso.core.config import ServiceConfig
from voiso.core.logging import debug, fail, get_logger, info, success, verbose, warn
from voiso.core.metrics import metrics
from voiso.db.repository import Repository
from voiso.provider.client import SpeechProvider
from voiso.provider.request_builder import ProviderRequest, build_provider_request
from voiso.services.errors import (
    ErrorCode,
    PersistenceWarning,
    ProviderError,
    StorageError,
    VoisoError,
)
from voiso.services.quota import QuotaGuard
from voiso.services.validators import GenerateRequest, validate_generate_payload
from voiso.services.voices import VoiceResolver
from voiso.storage.base import ObjectStorage, owner_segment
from voiso.utils.timeit import timeit

_LOG = get_logger("voiso.generation")

AUDIO_CONTENT_TYPE = "audio/mpeg"


@dataclass
class GenerationResult:
    """
    Outcome of a successful generation.

    Attributes:
        audio_url: Signed URL of the stored audio.
        audio_path: Storage key of the audio.
        generation_id: Row id, None when the history insert failed.
        pending: Deferred bookkeeping tasks, run via run_pending().
    """
    audio_url: str
    audio_path: str
    generation_id: Optional[str]
    pending: List[Callable[[], None]] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "audio_url": self.audio_url,
            "generation_id": self.generation_id,
        }

    def run_pending(self) -> None:
        tasks, self.pending = self.pending, []
        for task in tasks:
            task()


class GenerationService:
    """
    Orchestrates one generation request across its collaborators.

    Args:
        repository: Voices, generations and profiles.
        storage: Object store for generated audio.
        provider: Speech provider.
        config: Validated service configuration.
        quota: Quota guard; built from repository and config when omitted.
    """

    def __init__(
        self,
        repository: Repository,
        storage: ObjectStorage,
        provider: SpeechProvider,
        config: ServiceConfig,
        quota: Optional[QuotaGuard] = None,
    ):
        self._repo = repository
        self._storage = storage
        self._provider = provider
        self._config = config
        self._quota = quota or QuotaGuard(repository, config.quota)
        self._resolver = VoiceResolver(repository)
        self._url_ttl = config.storage.signed_url_ttl_s
        self._text_preview_chars = config.logging.text_preview_chars

    @property
    def quota(self) -> QuotaGuard:
        return self._quota

    # =========================================================================
    # Stages
    # =========================================================================

    def prepare(self, user_id: str, payload: Any) -> tuple[GenerateRequest, ProviderRequest]:
        """
        Run stages 1-4 without dispatching.

        Used by generate() and by ``voiso --dry-run``.
        """
        request = validate_generate_payload(payload)

        preview = request.text[:self._text_preview_chars] if self._text_preview_chars > 0 else ""
        info(_LOG, "request", chars=len(request.text), language=request.language, text_preview=preview)

        self._quota.check(user_id)
        voice = self._resolver.resolve(request.voice_id, user_id)

        provider_request = build_provider_request(
            request,
            voice,
            resolve_reference=self._resolve_reference,
            response_format=self._config.provider.response_format,
            max_new_tokens=self._config.provider.max_new_tokens,
        )
        verbose(
            _LOG,
            "provider_request_built",
            voice_type=voice.type,
            task_type=provider_request.task_type,
            language=provider_request.language,
        )
        return request, provider_request

    def _resolve_reference(self, location: str) -> str:
        try:
            return self._storage.resolve_location(location, self._url_ttl)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to sign reference audio URL: {e}") from e

    def _store_audio(self, user_id: str, audio: bytes) -> tuple[str, str]:
        key = f"generations/{owner_segment(user_id)}/{uuid.uuid4()}.mp3"
        try:
            self._storage.put(key, audio, AUDIO_CONTENT_TYPE)
        except Exception as e:
            fail(_LOG, "storage_upload_failed", error=str(e))
            raise StorageError(f"Failed to store audio: {e}") from e
        try:
            url = self._storage.get_url(key, self._url_ttl)
        except Exception as e:
            fail(_LOG, "storage_sign_failed", error=str(e))
            raise StorageError(f"Failed to sign audio URL: {e}") from e
        return key, url

    def _record_generation(self, user_id: str, request: GenerateRequest, url: str, key: str) -> Optional[str]:
        try:
            generation = self._repo.insert_generation(
                user_id=user_id,
                voice_id=request.voice_id,
                text=request.text,
                language=request.language,
                audio_url=url,
                audio_path=key,
            )
        except Exception as e:
            warning = PersistenceWarning("history", e)
            warn(_LOG, "history_insert_failed", error=str(warning.cause))
            metrics.record_bookkeeping_failure("history")
            return None
        return generation.id

    def _bump_counter(self, user_id: str) -> None:
        try:
            self._repo.increment_generation_count(user_id)
        except Exception as e:
            warning = PersistenceWarning("counter", e)
            warn(_LOG, "counter_update_failed", error=str(warning.cause))
            metrics.record_bookkeeping_failure("counter")
            return
        debug(_LOG, "counter_updated")

    # =========================================================================
    # Public API
    # =========================================================================

    def generate(self, user_id: str, payload: Any) -> GenerationResult:
        """
        Run the full pipeline for one request.

        Args:
            user_id: Authenticated caller.
            payload: Decoded JSON body.

        Returns:
            GenerationResult with the counter bump pending.

        Raises:
            ValidationError, QuotaExceeded, NotFound, Forbidden,
            ProviderError, StorageError.
        """
        try:
            with timeit("generation_total") as total_t:
                request, provider_request = self.prepare(user_id, payload)

                audio = self._provider.synthesize(provider_request)
                if not audio:
                    raise ProviderError("Speech provider returned no audio")

                with timeit("store") as t_store:
                    key, url = self._store_audio(user_id, audio)
                verbose(_LOG, "stage", event="store", seconds=round(t_store.timing.seconds, 4), bytes=len(audio))

                generation_id = self._record_generation(user_id, request, url, key)

        except VoisoError as e:
            metrics.record_generation(e.code)
            raise
        except Exception as e:
            fail(_LOG, "request_failed", error=str(e), error_type=type(e).__name__)
            metrics.record_generation(ErrorCode.INTERNAL_ERROR)
            raise

        metrics.record_generation("success", audio_bytes=len(audio))
        success(
            _LOG,
            "done",
            bytes=len(audio),
            generation_id=generation_id,
            seconds=round(total_t.timing.seconds, 3),
        )
        return GenerationResult(
            audio_url=url,
            audio_path=key,
            generation_id=generation_id,
            pending=[partial(self._bump_counter, user_id)],
        )

    def history(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Most recent generations, newest first, each with its voice embedded.

        Stored audio gets a freshly signed URL; rows without a storage key
        keep the URL they were saved with.
        """
        items = []
        for generation, voice in self._repo.list_generations(user_id, limit):
            item = generation.to_dict()
            if generation.audio_path:
                try:
                    item["audio_url"] = self._storage.get_url(generation.audio_path, self._url_ttl)
                except (OSError, ValueError) as e:
                    warn(_LOG, "history_resign_failed", generation_id=generation.id, error=str(e))
            item["voice"] = voice.to_dict() if voice is not None else None
            items.append(item)
        return items
