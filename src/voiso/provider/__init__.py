"""
Speech provider integration.

    - params.py: Task variants (Base, CustomVoice, VoiceDesign)
    - request_builder.py: Voice-dependent request construction
    - client.py: httpx client and endpoint normalization
"""
from voiso.provider.client import HttpSpeechProvider, SpeechProvider, resolve_speech_endpoint
from voiso.provider.request_builder import ProviderRequest, build_provider_request

__all__ = [
    "HttpSpeechProvider",
    "ProviderRequest",
    "SpeechProvider",
    "build_provider_request",
    "resolve_speech_endpoint",
]
