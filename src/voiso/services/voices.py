"""
Voice lookup, access control and management.

VoiceResolver is the generation pipeline's ownership check: a caller may
use a voice when it is shared (no owner) or their own. The service does
this itself rather than trusting any store-side row policy.

VoiceService backs the voice management endpoints: listing, cloning from
an uploaded reference recording, designing from a set of choices,
renaming and deleting. Default voices are seeded by operators
(``voiso --seed-defaults``) and cannot be changed through it.
"""
from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from voiso.core.config import StorageConfig
from voiso.core.logging import get_logger, info, success, verbose, warn
from voiso.db.models import Voice
from voiso.db.repository import Repository
from voiso.provider.params import TASK_BASE, TASK_CUSTOM_VOICE, TASK_VOICE_DESIGN
from voiso.services.errors import Forbidden, NotFound, StorageError, ValidationError
from voiso.services.validators import (
    DESIGN_AGE_RANGES,
    DESIGN_EMOTIONS,
    DESIGN_GENDERS,
    DESIGN_SPEAKING_STYLES,
    DESIGN_SPEEDS,
    DesignVoiceRequest,
)
from voiso.storage.base import ObjectStorage, owner_segment, parse_storage_ref, storage_ref

_LOG = get_logger("voiso.voices")

SOURCE_MODEL_BASE = "Qwen3-TTS-Base"
SOURCE_MODEL_CUSTOM_VOICE = "Qwen3-TTS-CustomVoice"
SOURCE_MODEL_VOICE_DESIGN = "Qwen3-TTS-VoiceDesign"

# Provider preset speakers offered to every user
DEFAULT_VOICES = (
    {"name": "Chelsie", "description": "Bright, friendly young female voice"},
    {"name": "Ethan", "description": "Warm, steady male voice"},
    {"name": "Serena", "description": "Gentle, soft-spoken female voice"},
    {"name": "Vivian", "description": "Confident, expressive female voice"},
)

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")


def build_voice_description(request: DesignVoiceRequest) -> str:
    """Describe a designed voice in one or two sentences for the provider."""
    age = DESIGN_AGE_RANGES[request.age_range].lower()
    gender = DESIGN_GENDERS[request.gender].lower()
    style = DESIGN_SPEAKING_STYLES[request.speaking_style].lower()
    emotion = DESIGN_EMOTIONS[request.emotion].lower()
    speed = DESIGN_SPEEDS[request.speed].lower()

    description = (
        f"A {age} {gender} voice with a {style} speaking style. "
        f"The tone is {emotion} and the speaking pace is {speed}. "
    )
    if request.additional_notes:
        description += request.additional_notes
    return description.strip()


def reference_key(user_id: str, filename: Optional[str], now_ms: Optional[int] = None) -> str:
    """Storage key for an uploaded reference recording."""
    stem = _UNSAFE_FILENAME.sub("-", filename or "reference").strip("-.") or "reference"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"voices/{owner_segment(user_id)}/{stamp}-{stem[:80]}"


class VoiceResolver:
    """Looks up a voice and enforces who may use it."""

    def __init__(self, repository: Repository):
        self._repo = repository

    def resolve(self, voice_id: str, user_id: str) -> Voice:
        """
        Raises:
            NotFound: No such voice.
            Forbidden: The voice belongs to another user.
        """
        voice = self._repo.get_voice(voice_id)
        if voice is None:
            raise NotFound()
        if voice.user_id is not None and voice.user_id != user_id:
            warn(_LOG, "voice_access_denied", voice_id=voice_id)
            raise Forbidden()
        return voice

    def resolve_owned(self, voice_id: str, user_id: str) -> Voice:
        """Like resolve(), but shared default voices are also Forbidden."""
        voice = self.resolve(voice_id, user_id)
        if voice.user_id is None:
            raise Forbidden("Default voices cannot be modified")
        return voice


@dataclass
class VoiceListing:
    mine: List[Voice]
    defaults: List[Voice]

    def to_dict(self) -> Dict[str, list]:
        return {
            "voices": [v.to_dict() for v in self.mine],
            "default_voices": [v.to_dict() for v in self.defaults],
        }


class VoiceService:
    """
    Voice management operations.

    Args:
        repository: Data access.
        storage: Object store for reference recordings.
        config: Storage section (upload size limit).
    """

    def __init__(self, repository: Repository, storage: ObjectStorage, config: StorageConfig):
        self._repo = repository
        self._storage = storage
        self._config = config
        self.resolver = VoiceResolver(repository)

    def list_for_user(self, user_id: str) -> VoiceListing:
        return VoiceListing(
            mine=self._repo.list_user_voices(user_id),
            defaults=self._repo.list_default_voices(),
        )

    def list_defaults(self) -> List[Voice]:
        return self._repo.list_default_voices()

    def clone(
        self,
        user_id: str,
        name: str,
        language: str,
        audio: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Voice:
        """
        Store a reference recording and create a cloned voice from it.

        Raises:
            ValidationError: Empty, oversized or non-audio upload.
            StorageError: The recording could not be stored.
        """
        errors = []
        if not audio:
            errors.append("file must not be empty")
        elif len(audio) > self._config.max_reference_bytes:
            errors.append(
                f"file exceeds maximum size ({len(audio)} > {self._config.max_reference_bytes} bytes)"
            )
        if content_type and not content_type.startswith("audio/") and content_type != "application/octet-stream":
            errors.append("file must be an audio file")
        if errors:
            raise ValidationError(errors)

        key = reference_key(user_id, filename)
        try:
            self._storage.put(key, audio, content_type or "application/octet-stream")
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to store reference audio: {e}") from e

        voice = self._repo.create_voice(
            user_id=user_id,
            name=name,
            type="cloned",
            source_model=SOURCE_MODEL_BASE,
            description=description,
            language=language,
            reference_audio_url=storage_ref(key),
            qwen_params={"task_type": TASK_BASE},
        )
        success(_LOG, "voice_cloned", voice_id=voice.id, bytes=len(audio))
        return voice

    def design(self, user_id: str, request: DesignVoiceRequest) -> Voice:
        description = build_voice_description(request)
        voice = self._repo.create_voice(
            user_id=user_id,
            name=request.name,
            type="designed",
            source_model=SOURCE_MODEL_VOICE_DESIGN,
            description=description,
            language=request.language,
            qwen_params={"task_type": TASK_VOICE_DESIGN, "voice_description": description},
        )
        success(_LOG, "voice_designed", voice_id=voice.id)
        return voice

    def rename(self, user_id: str, voice_id: str, name: str) -> Voice:
        self.resolver.resolve_owned(voice_id, user_id)
        voice = self._repo.rename_voice(voice_id, name)
        if voice is None:
            raise NotFound()
        info(_LOG, "voice_renamed", voice_id=voice_id)
        return voice

    def delete(self, user_id: str, voice_id: str) -> int:
        """Delete an owned voice and its history; returns generations removed."""
        voice = self.resolver.resolve_owned(voice_id, user_id)
        removed = self._repo.delete_voice(voice_id)

        key = parse_storage_ref(voice.reference_audio_url)
        if key is not None:
            try:
                self._storage.delete(key)
            except (OSError, ValueError) as e:
                warn(_LOG, "reference_delete_failed", voice_id=voice_id, error=str(e))

        info(_LOG, "voice_deleted", voice_id=voice_id, generations=removed)
        return removed

    def seed_defaults(self) -> int:
        """Insert any missing preset voices; returns how many were added."""
        existing = {v.name for v in self._repo.list_default_voices()}
        added = 0
        for preset in DEFAULT_VOICES:
            if preset["name"] in existing:
                continue
            self._repo.create_voice(
                user_id=None,
                name=preset["name"],
                type="default",
                source_model=SOURCE_MODEL_CUSTOM_VOICE,
                description=preset["description"],
                language="auto",
                qwen_params={"task_type": TASK_CUSTOM_VOICE, "speaker": preset["name"]},
            )
            added += 1
        verbose(_LOG, "default_voices_seeded", added=added)
        return added
