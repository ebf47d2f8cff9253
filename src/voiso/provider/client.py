"""
HTTP client for the speech synthesis provider.

The provider speaks an OpenAI-style ``/v1/audio/speech`` contract: a JSON
POST answered with raw audio bytes on success, or a JSON/text error body.
Calls are single-attempt with a bounded timeout; every failure mode
(non-2xx, timeout, connection error) is raised as ProviderError.

Usage:
    provider = HttpSpeechProvider(config.provider)
    audio = provider.synthesize(provider_request)
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from voiso.core.config import ProviderConfig
from voiso.core.logging import fail, get_logger, verbose
from voiso.core.metrics import metrics
from voiso.provider.request_builder import ProviderRequest
from voiso.services.errors import ProviderError
from voiso.utils.timeit import timeit

_LOG = get_logger("voiso.provider")

SPEECH_PATH = "/audio/speech"
_VERSION_ROOT = re.compile(r"/v\d+$")
_MAX_ERROR_BODY_CHARS = 2000


def resolve_speech_endpoint(base_url: str) -> str:
    """
    Derive the synthesis endpoint from a configured base URL.

    Recognized shapes, most specific first:
        https://host/v1/audio/speech  -> unchanged
        https://host/v1               -> https://host/v1/audio/speech
        https://host                  -> https://host/v1/audio/speech

    Trailing slashes are ignored.
    """
    url = base_url.strip().rstrip("/")
    if url.endswith(SPEECH_PATH):
        return url
    if _VERSION_ROOT.search(url):
        return url + SPEECH_PATH
    return url + "/v1" + SPEECH_PATH


class SpeechProvider(ABC):
    """Anything that can turn a ProviderRequest into audio bytes."""

    @abstractmethod
    def synthesize(self, request: ProviderRequest) -> bytes:
        """Return raw audio bytes or raise ProviderError."""

    @property
    def endpoint(self) -> str:
        return "-"

    def close(self) -> None:
        pass


class HttpSpeechProvider(SpeechProvider):
    """
    Speech provider reached over HTTP with httpx.

    Args:
        config: Provider section of the service config.
        client: Optional pre-built httpx.Client (tests pass one with a
            MockTransport).
    """

    def __init__(self, config: ProviderConfig, client: Optional[httpx.Client] = None):
        self._config = config
        self._endpoint = resolve_speech_endpoint(config.base_url)
        self._client = client or httpx.Client(timeout=config.timeout_s)
        self._owns_client = client is None

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        return headers

    def synthesize(self, request: ProviderRequest) -> bytes:
        payload = request.to_payload()
        verbose(
            _LOG,
            "provider_request",
            task_type=request.task_type,
            language=request.language,
            chars=len(request.text),
            fields=sorted(k for k in payload if k in ("voice", "ref_audio", "instructions")),
        )

        ok = False
        with timeit("provider") as t:
            try:
                response = self._client.post(
                    self._endpoint,
                    json=payload,
                    headers=self._headers(),
                    timeout=self._config.timeout_s,
                )
            except httpx.TimeoutException as e:
                metrics.observe_provider(t.seconds, ok=False)
                fail(_LOG, "provider_timeout", timeout_s=self._config.timeout_s)
                raise ProviderError(
                    f"Speech provider timed out after {self._config.timeout_s:g}s"
                ) from e
            except httpx.HTTPError as e:
                metrics.observe_provider(t.seconds, ok=False)
                fail(_LOG, "provider_unreachable", error=str(e))
                raise ProviderError(f"Speech provider request failed: {e}") from e

            if response.is_success:
                ok = True

        metrics.observe_provider(t.timing.seconds, ok=ok)

        if not ok:
            body = response.text[:_MAX_ERROR_BODY_CHARS]
            fail(_LOG, "provider_error", status=response.status_code, seconds=t.timing.seconds)
            raise ProviderError(
                f"Speech provider error: {response.status_code} - {body}",
                status=response.status_code,
                body=body,
            )

        audio = response.content
        verbose(_LOG, "provider_done", bytes=len(audio), seconds=t.timing.seconds)
        return audio

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
