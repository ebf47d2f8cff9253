"""
Provider request construction.

build_provider_request() turns a validated GenerateRequest and the
resolved voice into the outbound provider payload. It performs no I/O:
a cloned voice whose reference lives in object storage is turned into a
URL by the ``resolve_reference`` callable the caller passes in.

Voice type picks the source field, task type picks the variant:

    voice.type   source                          fits
    cloned       voice.reference_audio_url       BaseParams.ref_audio
    designed     qwen_params.voice_description   CustomVoice/VoiceDesign description
    default      qwen_params.speaker             CustomVoiceParams.speaker

A source value that is missing, or that the chosen variant has no slot
for, is left out of the payload.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Mapping, Optional

from voiso.core.logging import get_logger, verbose, warn
from voiso.provider.params import (
    BaseParams,
    CustomVoiceParams,
    ProviderParams,
    VoiceDesignParams,
    empty_params,
    task_type_of,
)

_LOG = get_logger("voiso.provider.builder")

DEFAULT_RESPONSE_FORMAT = "mp3"
DEFAULT_MAX_NEW_TOKENS = 4096

# Language tag -> provider language name
LANGUAGE_NAMES: Dict[str, str] = {
    "auto": "Auto",
    "en": "English",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "pt": "Portuguese",
    "ru": "Russian",
}


def provider_language(tag: Optional[str]) -> str:
    """Map a language tag to the provider vocabulary; unknown tags become "Auto"."""
    if not tag:
        return "Auto"
    return LANGUAGE_NAMES.get(tag.lower(), "Auto")


@dataclass(frozen=True)
class ProviderRequest:
    """Outbound synthesis request."""
    text: str
    language: str
    params: ProviderParams
    response_format: str = DEFAULT_RESPONSE_FORMAT
    max_new_tokens: int = DEFAULT_MAX_NEW_TOKENS

    @property
    def task_type(self) -> str:
        return self.params.task_type

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the provider call."""
        payload: Dict[str, Any] = {
            "input": self.text,
            "response_format": self.response_format,
            "task_type": self.task_type,
            "language": self.language,
            "max_new_tokens": self.max_new_tokens,
        }
        payload.update(self.params.wire_fields())
        return payload


def _attach_source(params: ProviderParams, voice_type: str, value: str) -> Optional[ProviderParams]:
    """Put the voice's source value into the variant's slot, None if it has none."""
    if voice_type == "cloned":
        if isinstance(params, BaseParams):
            return replace(params, ref_audio=value)
        return None
    if voice_type == "designed":
        if isinstance(params, (CustomVoiceParams, VoiceDesignParams)):
            return replace(params, description=value)
        return None
    if voice_type == "default":
        if isinstance(params, CustomVoiceParams):
            return replace(params, speaker=value)
        return None
    return None


def _source_value(
    voice: Any,
    qwen_params: Mapping[str, Any],
    resolve_reference: Optional[Callable[[str], str]],
) -> Optional[str]:
    if voice.type == "cloned":
        ref = voice.reference_audio_url
        if ref and resolve_reference is not None:
            ref = resolve_reference(ref)
        return ref or None
    if voice.type == "designed":
        return qwen_params.get("voice_description") or None
    if voice.type == "default":
        return qwen_params.get("speaker") or None
    return None


def build_provider_request(
    request: Any,
    voice: Any,
    *,
    resolve_reference: Optional[Callable[[str], str]] = None,
    response_format: str = DEFAULT_RESPONSE_FORMAT,
    max_new_tokens: int = DEFAULT_MAX_NEW_TOKENS,
) -> ProviderRequest:
    """
    Build the provider request for one generation.

    Args:
        request: Validated GenerateRequest (text, language; an omitted
            language falls back to the voice's language).
        voice: Resolved voice (type, qwen_params, reference_audio_url).
        resolve_reference: Turns a stored reference location into a URL
            the provider can fetch.
        response_format: Audio container requested from the provider.
        max_new_tokens: Provider decoding budget.

    Returns:
        ProviderRequest ready for dispatch.
    """
    qwen_params: Mapping[str, Any] = voice.qwen_params or {}
    params = empty_params(task_type_of(qwen_params))

    value = _source_value(voice, qwen_params, resolve_reference)
    if value is None:
        verbose(_LOG, "voice_source_missing", voice_type=voice.type, task_type=params.task_type)
    else:
        attached = _attach_source(params, voice.type, value)
        if attached is None:
            warn(_LOG, "voice_source_dropped", voice_type=voice.type, task_type=params.task_type)
        else:
            params = attached

    language = request.language
    if not getattr(request, "language_explicit", True) and getattr(voice, "language", None):
        language = voice.language

    return ProviderRequest(
        text=request.text,
        language=provider_language(language),
        params=params,
        response_format=response_format,
        max_new_tokens=max_new_tokens,
    )
