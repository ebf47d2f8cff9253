"""
Input Validation for voiso.

Validation runs before any quota lookup or provider call, so a rejected
request has no side effects. Unlike a fail-on-first check, the payload
validators collect every violated rule and raise a single ValidationError
listing all of them.

Generation Rules:
    - voice_id: Required, must parse as a UUID
    - text: Required string, trimmed, 1..5000 characters after trimming
    - language: Optional, exactly one of SUPPORTED_LANGUAGES (lower-case,
      no surrounding whitespace), defaults to "auto"

Voice Rules:
    - name: Required, trimmed, 1..100 characters
    - language: as above
    - design choices: one of the keys in the DESIGN_* tables

Usage:
    from voiso.services.validators import validate_generate_payload

    request = validate_generate_payload(await_json_body)
    request.text      # trimmed
    request.language  # "auto" when omitted
    request.language_explicit  # False when omitted
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from voiso.core.logging import get_logger, verbose
from voiso.services.errors import ValidationError

_LOG = get_logger("voiso.validators")

MAX_TEXT_CHARS = 5000
MAX_VOICE_NAME_CHARS = 100
MAX_DESCRIPTION_CHARS = 500
MAX_NOTES_CHARS = 500

SUPPORTED_LANGUAGES = ("auto", "en", "zh", "ja", "ko", "es", "fr", "de", "pt", "ru", "ar")
PLANS = ("free", "creator", "pro")

# Voice design choices: key -> label used in the generated description
DESIGN_GENDERS = {"male": "Male", "female": "Female", "neutral": "Neutral"}
DESIGN_AGE_RANGES = {
    "young": "Young (18-30)",
    "middle": "Middle-aged (30-50)",
    "mature": "Mature (50+)",
}
DESIGN_SPEAKING_STYLES = {
    "conversational": "Conversational",
    "professional": "Professional",
    "narrative": "Narrative/Storytelling",
    "dramatic": "Dramatic",
    "news": "News Anchor",
}
DESIGN_EMOTIONS = {
    "neutral": "Neutral",
    "happy": "Happy/Cheerful",
    "calm": "Calm/Soothing",
    "energetic": "Energetic/Excited",
    "serious": "Serious/Authoritative",
}
DESIGN_SPEEDS = {"slow": "Slow", "normal": "Normal", "fast": "Fast"}


@dataclass(frozen=True)
class GenerateRequest:
    """
    Validated generation input.

    language_explicit is False when the payload had no language; the
    provider request then uses the voice's own language.
    """
    voice_id: str
    text: str
    language: str = "auto"
    language_explicit: bool = True


@dataclass(frozen=True)
class DesignVoiceRequest:
    """Validated voice design input; choice fields hold table keys."""
    name: str
    language: str
    gender: str
    age_range: str
    speaking_style: str
    emotion: str
    speed: str
    additional_notes: str = ""


def _check_uuid(value: Any, field: str, errors: List[str]) -> Optional[str]:
    if value is None or value == "":
        errors.append(f"{field} is required")
        return None
    if not isinstance(value, str):
        errors.append(f"{field} must be a string")
        return None
    try:
        return str(uuid.UUID(value))
    except ValueError:
        errors.append(f"{field} must be a valid UUID")
        return None


def _check_language(value: Any, errors: List[str]) -> str:
    if value is None or value == "":
        return "auto"
    if not isinstance(value, str) or value not in SUPPORTED_LANGUAGES:
        errors.append(f"language must be one of: {', '.join(SUPPORTED_LANGUAGES)}")
        return "auto"
    return value


def _check_name(value: Any, errors: List[str]) -> str:
    if not isinstance(value, str) or not value.strip():
        errors.append("name is required")
        return ""
    name = value.strip()
    if len(name) > MAX_VOICE_NAME_CHARS:
        errors.append(f"name exceeds maximum length ({len(name)} > {MAX_VOICE_NAME_CHARS})")
    return name


def _check_choice(value: Any, field: str, table: Mapping[str, str], errors: List[str]) -> str:
    if not isinstance(value, str) or value not in table:
        errors.append(f"{field} must be one of: {', '.join(table)}")
        return ""
    return value


def validate_text(text: Any, max_length: int = MAX_TEXT_CHARS) -> str:
    """
    Validate and trim synthesis text.

    Raises:
        ValidationError: If text is missing, blank or too long.
    """
    errors: List[str] = []
    result = _check_text(text, errors, max_length)
    if errors:
        raise ValidationError(errors)
    return result


def _check_text(text: Any, errors: List[str], max_length: int = MAX_TEXT_CHARS) -> str:
    if text is None:
        errors.append("text is required")
        return ""
    if not isinstance(text, str):
        errors.append("text must be a string")
        return ""
    trimmed = text.strip()
    if not trimmed:
        errors.append("text must not be empty")
    elif len(trimmed) > max_length:
        errors.append(f"text exceeds maximum length ({len(trimmed)} > {max_length})")
    return trimmed


def validate_generate_payload(payload: Any) -> GenerateRequest:
    """
    Validate a raw generation payload.

    Args:
        payload: Decoded JSON body.

    Returns:
        GenerateRequest with a canonical voice id, trimmed text and a
        language tag.

    Raises:
        ValidationError: Listing every violated rule.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object")

    errors: List[str] = []
    voice_id = _check_uuid(payload.get("voice_id"), "voice_id", errors)
    text = _check_text(payload.get("text"), errors)
    language = _check_language(payload.get("language"), errors)

    if errors or voice_id is None:
        verbose(_LOG, "generate_payload_rejected", rules=len(errors))
        raise ValidationError(errors)

    return GenerateRequest(
        voice_id=voice_id,
        text=text,
        language=language,
        language_explicit=payload.get("language") not in (None, ""),
    )


def validate_voice_id(value: Any) -> str:
    """Validate a path voice id; returns the canonical UUID string."""
    errors: List[str] = []
    voice_id = _check_uuid(value, "voice_id", errors)
    if errors or voice_id is None:
        raise ValidationError(errors)
    return voice_id


def validate_voice_name(value: Any) -> str:
    errors: List[str] = []
    name = _check_name(value, errors)
    if errors:
        raise ValidationError(errors)
    return name


def validate_clone_fields(name: Any, language: Any, description: Any = None) -> Dict[str, Any]:
    """
    Validate the form fields of a clone upload.

    Returns:
        Dict with ``name``, ``language`` and ``description`` (None when blank).
    """
    errors: List[str] = []
    clean_name = _check_name(name, errors)
    clean_language = _check_language(language, errors)
    clean_description: Optional[str] = None
    if description is not None:
        if not isinstance(description, str):
            errors.append("description must be a string")
        else:
            clean_description = description.strip() or None
            if clean_description and len(clean_description) > MAX_DESCRIPTION_CHARS:
                errors.append(
                    f"description exceeds maximum length ({len(clean_description)} > {MAX_DESCRIPTION_CHARS})"
                )
    if errors:
        raise ValidationError(errors)
    return {"name": clean_name, "language": clean_language, "description": clean_description}


def validate_design_payload(payload: Any) -> DesignVoiceRequest:
    """
    Validate a voice design payload.

    Raises:
        ValidationError: Listing every violated rule.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object")

    errors: List[str] = []
    name = _check_name(payload.get("name"), errors)
    language = _check_language(payload.get("language"), errors)
    gender = _check_choice(payload.get("gender"), "gender", DESIGN_GENDERS, errors)
    age_range = _check_choice(payload.get("age_range"), "age_range", DESIGN_AGE_RANGES, errors)
    style = _check_choice(payload.get("speaking_style"), "speaking_style", DESIGN_SPEAKING_STYLES, errors)
    emotion = _check_choice(payload.get("emotion"), "emotion", DESIGN_EMOTIONS, errors)
    speed = _check_choice(payload.get("speed"), "speed", DESIGN_SPEEDS, errors)

    notes_raw = payload.get("additional_notes")
    notes = ""
    if notes_raw is not None:
        if not isinstance(notes_raw, str):
            errors.append("additional_notes must be a string")
        else:
            notes = notes_raw.strip()
            if len(notes) > MAX_NOTES_CHARS:
                errors.append(f"additional_notes exceeds maximum length ({len(notes)} > {MAX_NOTES_CHARS})")

    if errors:
        raise ValidationError(errors)

    return DesignVoiceRequest(
        name=name,
        language=language,
        gender=gender,
        age_range=age_range,
        speaking_style=style,
        emotion=emotion,
        speed=speed,
        additional_notes=notes,
    )


def validate_plan(value: Any) -> str:
    if not isinstance(value, str) or value not in PLANS:
        raise ValidationError(f"plan must be one of: {', '.join(PLANS)}")
    return value
