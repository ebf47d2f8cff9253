"""
API Request/Response Schemas.

Generation and voice-design bodies are taken as raw JSON and checked by
services.validators, which reports every violated rule at once. The
models here cover the small bodies and the response shapes shown in the
OpenAPI docs.

Example generation response:
    {
        "success": true,
        "audio_url": "http://localhost:8000/v1/storage/generations/<user>/<id>.mp3?expires=...&signature=...",
        "generation_id": "1b4e28ba-2fa1-11d2-883f-0016d3cca427"
    }
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class GenerateResponse(BaseModel):
    success: bool = True
    audio_url: str
    generation_id: Optional[str] = None


class QuotaUsageBody(BaseModel):
    used: int
    limit: int


class QuotaExceededResponse(BaseModel):
    error: str = "quota_exceeded"
    message: str
    usage: QuotaUsageBody


class ErrorResponse(BaseModel):
    error: str
    details: Optional[List[str]] = None


class QuotaResponse(BaseModel):
    used: int
    limit: int
    remaining: int
    is_at_limit: bool


class PlanResponse(BaseModel):
    plan: str
    daily_limit: int


class PlanUpdate(BaseModel):
    plan: str = Field(..., description="free, creator or pro")


class VoiceRename(BaseModel):
    name: str = Field(..., description="New display name (1-100 characters)")


class VoiceListResponse(BaseModel):
    voices: List[Dict[str, Any]]
    default_voices: List[Dict[str, Any]]


class HealthResponse(BaseModel):
    ok: bool
    database: str
    provider_endpoint: str
    storage: str
    version: str
