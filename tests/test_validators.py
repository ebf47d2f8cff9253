"""
Tests for input validation.

Tests cover:
- validate_generate_payload: every rule, all errors collected
- Trimming and its idempotence
- Language defaulting
- Voice design and clone field validation
"""
import pytest

from voiso.services.errors import ValidationError
from voiso.services.validators import (
    MAX_TEXT_CHARS,
    validate_clone_fields,
    validate_design_payload,
    validate_generate_payload,
    validate_plan,
    validate_text,
    validate_voice_id,
)

VOICE_ID = "3f2b8c1e-9d4a-4e7b-8c6d-1a2b3c4d5e6f"


class TestGeneratePayload:
    """Tests for validate_generate_payload()."""

    def test_valid_payload(self):
        req = validate_generate_payload({"voice_id": VOICE_ID, "text": "  Hello  ", "language": "en"})
        assert req.voice_id == VOICE_ID
        assert req.text == "Hello"
        assert req.language == "en"

    def test_language_defaults_to_auto(self):
        req = validate_generate_payload({"voice_id": VOICE_ID, "text": "Hi"})
        assert req.language == "auto"
        assert req.language_explicit is False

    def test_explicit_auto_is_explicit(self):
        req = validate_generate_payload({"voice_id": VOICE_ID, "text": "Hi", "language": "auto"})
        assert req.language == "auto"
        assert req.language_explicit is True

    @pytest.mark.parametrize("language", ["EN", " en ", "En"])
    def test_language_must_match_exactly(self, language):
        with pytest.raises(ValidationError) as exc:
            validate_generate_payload({"voice_id": VOICE_ID, "text": "Hi", "language": language})
        assert exc.value.errors[0].startswith("language must be one of")

    def test_uppercase_voice_id_canonicalized(self):
        req = validate_generate_payload({"voice_id": VOICE_ID.upper(), "text": "Hi"})
        assert req.voice_id == VOICE_ID

    def test_whitespace_only_text_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_generate_payload({"voice_id": VOICE_ID, "text": "   "})
        assert exc.value.errors == ["text must not be empty"]
        assert exc.value.status_code == 400

    def test_text_length_limit_applies_after_trim(self):
        padded = "  " + "a" * MAX_TEXT_CHARS + "  "
        assert len(validate_generate_payload({"voice_id": VOICE_ID, "text": padded}).text) == MAX_TEXT_CHARS

        with pytest.raises(ValidationError):
            validate_generate_payload({"voice_id": VOICE_ID, "text": "a" * (MAX_TEXT_CHARS + 1)})

    def test_all_errors_reported(self):
        with pytest.raises(ValidationError) as exc:
            validate_generate_payload({"voice_id": "not-a-uuid", "text": "", "language": "xx"})
        errors = exc.value.errors
        assert len(errors) == 3
        assert any("voice_id" in e for e in errors)
        assert any("text" in e for e in errors)
        assert any("language" in e for e in errors)

    def test_missing_fields(self):
        with pytest.raises(ValidationError) as exc:
            validate_generate_payload({})
        assert "voice_id is required" in exc.value.errors
        assert "text is required" in exc.value.errors

    def test_non_object_body(self):
        with pytest.raises(ValidationError):
            validate_generate_payload(["voice_id", "text"])

    def test_non_string_text(self):
        with pytest.raises(ValidationError) as exc:
            validate_generate_payload({"voice_id": VOICE_ID, "text": 42})
        assert exc.value.errors == ["text must be a string"]

    def test_to_dict_lists_details(self):
        with pytest.raises(ValidationError) as exc:
            validate_generate_payload({"voice_id": "x", "text": ""})
        body = exc.value.to_dict()
        assert body["details"] == exc.value.errors
        assert isinstance(body["error"], str)


class TestTrim:
    @pytest.mark.parametrize("text", ["hello", "  hello", "hello\n\t", "  hi there  "])
    def test_trim_is_idempotent(self, text):
        once = validate_text(text)
        assert validate_text(once) == once


class TestVoiceFields:
    def test_validate_voice_id(self):
        assert validate_voice_id(VOICE_ID) == VOICE_ID
        with pytest.raises(ValidationError):
            validate_voice_id("123")

    def test_clone_fields(self):
        fields = validate_clone_fields("  My Voice ", "en", "   ")
        assert fields == {"name": "My Voice", "language": "en", "description": None}

    def test_clone_fields_errors_collected(self):
        with pytest.raises(ValidationError) as exc:
            validate_clone_fields("", "klingon")
        assert len(exc.value.errors) == 2

    def test_design_payload(self):
        req = validate_design_payload({
            "name": "Anchor",
            "language": "en",
            "gender": "female",
            "age_range": "middle",
            "speaking_style": "news",
            "emotion": "serious",
            "speed": "normal",
            "additional_notes": "  Slight British accent. ",
        })
        assert req.additional_notes == "Slight British accent."
        assert req.speaking_style == "news"

    def test_design_payload_bad_choices(self):
        with pytest.raises(ValidationError) as exc:
            validate_design_payload({"name": "X", "gender": "robot", "age_range": "old"})
        assert len(exc.value.errors) == 5  # gender, age_range, speaking_style, emotion, speed

    def test_plan(self):
        assert validate_plan("pro") == "pro"
        with pytest.raises(ValidationError):
            validate_plan("enterprise")
