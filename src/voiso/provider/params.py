"""
Provider parameter variants.

Each voice stores a loose ``qwen_params`` JSON bundle. Before dispatch it
is narrowed into exactly one of three task variants, and only the fields
that variant can carry are ever sent:

    BaseParams          task_type=Base         ref_audio
    CustomVoiceParams   task_type=CustomVoice  voice (speaker), instructions
    VoiceDesignParams   task_type=VoiceDesign  instructions

Missing or unrecognized task types narrow to BaseParams.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

TASK_BASE = "Base"
TASK_CUSTOM_VOICE = "CustomVoice"
TASK_VOICE_DESIGN = "VoiceDesign"
TASK_TYPES = (TASK_BASE, TASK_CUSTOM_VOICE, TASK_VOICE_DESIGN)


@dataclass(frozen=True)
class BaseParams:
    """Voice cloning from a reference recording."""
    ref_audio: Optional[str] = None

    task_type = TASK_BASE

    def wire_fields(self) -> Dict[str, Any]:
        return {"ref_audio": self.ref_audio} if self.ref_audio else {}


@dataclass(frozen=True)
class CustomVoiceParams:
    """A provider preset speaker, optionally steered by instructions."""
    speaker: Optional[str] = None
    description: Optional[str] = None

    task_type = TASK_CUSTOM_VOICE

    def wire_fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if self.speaker:
            fields["voice"] = self.speaker
        if self.description:
            fields["instructions"] = self.description
        return fields


@dataclass(frozen=True)
class VoiceDesignParams:
    """A voice synthesized from a natural-language description."""
    description: Optional[str] = None

    task_type = TASK_VOICE_DESIGN

    def wire_fields(self) -> Dict[str, Any]:
        return {"instructions": self.description} if self.description else {}


ProviderParams = Union[BaseParams, CustomVoiceParams, VoiceDesignParams]


def task_type_of(qwen_params: Optional[Mapping[str, Any]]) -> str:
    """Task type named by a stored bundle, "Base" when absent or unknown."""
    if not qwen_params:
        return TASK_BASE
    value = qwen_params.get("task_type")
    return value if value in TASK_TYPES else TASK_BASE


def empty_params(task_type: str) -> ProviderParams:
    if task_type == TASK_CUSTOM_VOICE:
        return CustomVoiceParams()
    if task_type == TASK_VOICE_DESIGN:
        return VoiceDesignParams()
    return BaseParams()
