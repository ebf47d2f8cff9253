"""
Voice Management Routes.

Endpoints:
    GET    /v1/voices          - Caller's voices plus default voices
    GET    /v1/voices/default  - Default voices (no auth)
    POST   /v1/voices/clone    - Create a cloned voice from an upload
    POST   /v1/voices/design   - Create a designed voice from choices
    PATCH  /v1/voices/{id}     - Rename an owned voice
    DELETE /v1/voices/{id}     - Delete an owned voice and its history

Default voices and other users' voices cannot be changed (403).
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile

from voiso.api.dependencies import get_current_user, get_services, new_request_id
from voiso.api.schemas import VoiceListResponse, VoiceRename
from voiso.auth.identity import Identity
from voiso.services.factory import ServiceBundle
from voiso.services.validators import (
    validate_clone_fields,
    validate_design_payload,
    validate_voice_id,
    validate_voice_name,
)

router = APIRouter(prefix="/v1/voices", tags=["voices"])


@router.get("", response_model=VoiceListResponse)
def list_voices(
    user: Identity = Depends(get_current_user),
    services: ServiceBundle = Depends(get_services),
):
    return services.voices.list_for_user(user.user_id).to_dict()


@router.get("/default")
def list_default_voices(services: ServiceBundle = Depends(get_services)):
    return {"voices": [v.to_dict() for v in services.voices.list_defaults()]}


@router.post("/clone", status_code=201)
def clone_voice(
    name: str = Form(...),
    language: str = Form("auto"),
    description: Optional[str] = Form(None),
    file: UploadFile = File(...),
    user: Identity = Depends(get_current_user),
    services: ServiceBundle = Depends(get_services),
):
    """
    Clone a voice from a reference recording (multipart form).

    The upload is read up to one byte past the configured limit, so an
    oversized file is rejected without buffering all of it.
    """
    new_request_id()
    fields = validate_clone_fields(name, language, description)
    limit = services.config.storage.max_reference_bytes
    audio = file.file.read(limit + 1)
    voice = services.voices.clone(
        user.user_id,
        fields["name"],
        fields["language"],
        audio,
        filename=file.filename,
        content_type=file.content_type,
        description=fields["description"],
    )
    return voice.to_dict()


@router.post("/design", status_code=201)
def design_voice(
    payload: Dict[str, Any] = Body(...),
    user: Identity = Depends(get_current_user),
    services: ServiceBundle = Depends(get_services),
):
    new_request_id()
    request = validate_design_payload(payload)
    return services.voices.design(user.user_id, request).to_dict()


@router.patch("/{voice_id}")
def rename_voice(
    voice_id: str,
    body: VoiceRename,
    user: Identity = Depends(get_current_user),
    services: ServiceBundle = Depends(get_services),
):
    voice = services.voices.rename(user.user_id, validate_voice_id(voice_id), validate_voice_name(body.name))
    return voice.to_dict()


@router.delete("/{voice_id}")
def delete_voice(
    voice_id: str,
    user: Identity = Depends(get_current_user),
    services: ServiceBundle = Depends(get_services),
):
    removed = services.voices.delete(user.user_id, validate_voice_id(voice_id))
    return {"deleted": True, "generations_removed": removed}
