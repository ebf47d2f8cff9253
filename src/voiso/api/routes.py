"""
Generation API Routes.

Endpoints:
    POST /functions/v1/generate-audio  - Synthesize text with a voice
    POST /v1/generate-audio            - Same handler, versioned path
    GET  /v1/storage/{key}             - Serve stored audio via signed URL
    GET  /health                       - Health check
    GET  /metrics                      - Prometheus metrics

Request Flow (generate-audio):
    1. Authenticate the bearer token (401)
    2. Parse the JSON body (400 on invalid JSON)
    3. GenerationService.generate(): validate, quota, voice, provider,
       storage, history row
    4. Respond, then bump the usage counter in the background

Error Handling:
    Domain errors are rendered by the VoisoError handler in main.py:
        {"error": "<message>"}                                    400/401/403/404/500
        {"error": "quota_exceeded", "message": ..., "usage": {...}}  429

Example:
    curl -X POST http://localhost:8000/functions/v1/generate-audio \\
        -H "Authorization: Bearer $TOKEN" \\
        -H "Content-Type: application/json" \\
        -d '{"voice_id": "...", "text": "Hello there", "language": "en"}'
"""
from __future__ import annotations

import json

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from voiso import __version__
from voiso.api.dependencies import get_current_user, get_services, new_request_id
from voiso.api.schemas import ErrorResponse, GenerateResponse, HealthResponse, QuotaExceededResponse
from voiso.auth.identity import Identity
from voiso.core.logging import get_logger, verbose
from voiso.core.metrics import metrics
from voiso.services.errors import ValidationError
from voiso.services.factory import ServiceBundle

router = APIRouter()

_LOG = get_logger("voiso.api")

_GENERATE_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    429: {"model": QuotaExceededResponse},
    500: {"model": ErrorResponse},
}


@router.post("/functions/v1/generate-audio", response_model=GenerateResponse, responses=_GENERATE_RESPONSES)
@router.post("/v1/generate-audio", response_model=GenerateResponse, responses=_GENERATE_RESPONSES)
async def generate_audio(
    request: Request,
    background_tasks: BackgroundTasks,
    user: Identity = Depends(get_current_user),
    services: ServiceBundle = Depends(get_services),
):
    """
    Synthesize text with one of the caller's voices or a default voice.

    Body: ``{"voice_id": uuid, "text": str, "language"?: str}``

    The body is parsed here rather than by FastAPI so authentication is
    always checked before the payload.
    """
    rid = new_request_id()

    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else None
    except (ValueError, UnicodeDecodeError) as e:
        verbose(_LOG, "invalid_json", error=str(e))
        raise ValidationError("Invalid JSON body") from e

    result = await run_in_threadpool(services.generation.generate, user.user_id, payload)
    background_tasks.add_task(result.run_pending)

    return JSONResponse(content=result.to_response(), headers={"X-Request-Id": rid})


@router.get("/v1/storage/{key:path}", response_class=Response)
def get_stored_object(
    key: str,
    expires: int = Query(...),
    signature: str = Query(...),
    services: ServiceBundle = Depends(get_services),
):
    """
    Serve a stored object when the signed URL is valid and unexpired.

    Returns 403 for a bad or expired signature, 404 when the object is
    gone.
    """
    if not services.storage.verify(key, expires, signature):
        return JSONResponse(status_code=403, content={"error": "Invalid or expired signature"})
    try:
        data = services.storage.get(key)
    except FileNotFoundError:
        return JSONResponse(status_code=404, content={"error": "Object not found"})
    return Response(
        content=data,
        media_type=services.storage.content_type(key),
        headers={"Cache-Control": "private, max-age=300"},
    )


@router.get("/health", response_model=HealthResponse)
def health(services: ServiceBundle = Depends(get_services)):
    """
    Health check for load balancers and probes.

    Reports database reachability, the resolved provider endpoint and the
    storage location. Returns 503 when the database is unreachable.
    """
    body = dict(services.health(), version=__version__)
    return JSONResponse(status_code=200 if body["ok"] else 503, content=body)


@router.get("/metrics")
def metrics_endpoint():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
