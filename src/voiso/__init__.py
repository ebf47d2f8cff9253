"""
voiso: Voice-Synthesis SaaS Back End.

A FastAPI service that lets users manage text-to-speech voice profiles and
synthesize text against a remote Qwen3-TTS compatible speech API, metered by
a rolling daily quota tied to a subscription plan.

Voice Types:
    - cloned: Built from an uploaded reference recording
    - designed: Built from a free-text voice description
    - default: Curated preset speakers shared by every user

Key Features:
    - Generation endpoint (/functions/v1/generate-audio)
    - Rolling 24-hour quota derived from the generation log
    - Voice-type dependent provider request shaping
    - Object storage with time-limited signed URLs
    - Voice management, plan and history endpoints
    - Prometheus metrics support

Example Usage:
    >>> from voiso.core.config import Settings
    >>> from voiso.services.factory import build_services
    >>>
    >>> settings = Settings(raw={'database': {'url': 'sqlite://'}})
    >>> services = build_services(settings)
    >>> result = services.generation.generate(
    ...     user_id, {"voice_id": voice_id, "text": "Hello there"}
    ... )
    >>> print(result.audio_url)
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
